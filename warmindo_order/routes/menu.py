"""
Menu Routes
===========

- GET  /menu: menu cards, categories and the cart badge
- POST /menu/assistant: ask the menu assistant (rate limited)

The assistant always answers with a reply; failures become a canned
apology rather than an error status.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ..config import get_rate_limit_chat
from ..deps import get_assistant, get_menu_controller
from ..rate_limit import limiter
from ..schemas.menu import AssistantReply, AssistantRequest, MenuScreenOut
from ..services.catalog import MenuController
from ..services.recommendation import MenuAssistant

logger = logging.getLogger(__name__)

menu_router = APIRouter(prefix="/menu", tags=["Menu"])


@menu_router.get("", response_model=MenuScreenOut)
def menu_screen(
    category_id: Optional[str] = Query(None, description="Only menus in this category"),
    sort: str = Query("popular", description="popular, newest, price-asc or price-desc"),
    controller: MenuController = Depends(get_menu_controller),
) -> MenuScreenOut:
    return controller.screen(category_id=category_id, sort=sort)


@menu_router.post("/assistant", response_model=AssistantReply)
@limiter.limit(get_rate_limit_chat)
def ask_assistant(
    request: Request,
    body: AssistantRequest,
    assistant: MenuAssistant = Depends(get_assistant),
) -> AssistantReply:
    return AssistantReply(reply=assistant.reply(body.message))
