"""
Shared Response Schemas
=======================

Every screen response carries the same two extras besides its payload:

- ``notices``: short messages the UI shows as toasts (level is one of
  ``success``, ``info``, ``warning``, ``error``).
- ``redirect``: the screen the UI should move to next, or None to stay.
  Values are screen names (``order-start``, ``menu``, ``checkout``) or a
  screen with its query (``receipt?id=...``, ``pay?code=...``).
"""

from typing import List, Optional

from pydantic import BaseModel


class Notice(BaseModel):
    level: str
    message: str


class ScreenResponse(BaseModel):
    notices: List[Notice] = []
    redirect: Optional[str] = None

    def notify(self, level: str, message: str) -> "ScreenResponse":
        self.notices.append(Notice(level=level, message=message))
        return self


class ErrorResponse(BaseModel):
    """Body of 4xx/5xx responses raised by the storefront routes."""
    detail: str
    field: Optional[str] = None
    code: Optional[str] = None
    notices: List[Notice] = []
