"""Live queue schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from .common import ScreenResponse


class QueueRowOut(BaseModel):
    id: str
    queue_no: Optional[int] = None
    guest_name: str = "Tamu"
    contact: Optional[str] = None
    service_type: Optional[str] = None
    service_label: str = ""
    table_no: Optional[str] = None
    status: Optional[str] = None
    status_label: str = ""
    is_paid: bool = False
    created_at: Optional[datetime] = None
    time_display: str = ""


class QueueSummary(BaseModel):
    total: int = 0
    paid: int = 0
    unpaid: int = 0

    @model_validator(mode="after")
    def check_counts(self):
        if self.total != self.paid + self.unpaid:
            raise ValueError("queue total must equal paid + unpaid")
        return self


class QueueOut(ScreenResponse):
    rows: List[QueueRowOut] = []
    summary: QueueSummary = Field(default_factory=QueueSummary)
    source: str = "view"  # "view" or "fallback"
