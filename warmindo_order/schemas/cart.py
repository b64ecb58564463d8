"""Cart and intake schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field

from .common import ScreenResponse


class CartLineOut(BaseModel):
    menu_id: str
    name: str
    price: int
    quantity: int
    subtotal: int
    note: Optional[str] = None


class CartOut(ScreenResponse):
    """Cart contents plus the badge count (sum of quantities)."""
    lines: List[CartLineOut] = []
    total: int = 0
    count: int = 0


class CartAddRequest(BaseModel):
    menu_id: str = Field(..., min_length=1)


class CartQuantityRequest(BaseModel):
    delta: int


class TableOut(BaseModel):
    label: str
    capacity: Optional[int] = None
    display: str


class TablesOut(ScreenResponse):
    tables: List[TableOut] = []


class PreOrderIn(BaseModel):
    guest_name: str = ""
    contact: str = ""
    service_type: str = "dine_in"
    table_no: str = ""


class PreOrderOut(ScreenResponse):
    guest_name: str = ""
    contact: str = ""
    service_type: Optional[str] = None
    service_label: Optional[str] = None
    table_no: str = ""
