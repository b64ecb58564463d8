"""
Menu Schemas for Warmindo Order
===============================

Models for the menu screen: the category filter, the menu cards and the
menu assistant chat box.

Sorting:
--------
``sort`` takes one of ``popular`` (catalog order), ``newest`` (reversed
catalog order), ``price-asc`` or ``price-desc``.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import MAX_MESSAGE_LENGTH
from .common import ScreenResponse

SORT_OPTIONS = ("popular", "newest", "price-asc", "price-desc")


class CategoryOut(BaseModel):
    id: str
    name: str


class MenuCardOut(BaseModel):
    id: str
    name: str
    description: str
    price: int
    price_display: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    photo_url: str


class MenuScreenOut(ScreenResponse):
    categories: List[CategoryOut] = []
    menus: List[MenuCardOut] = []
    cart_count: int = 0


class AssistantRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class AssistantReply(BaseModel):
    reply: str
