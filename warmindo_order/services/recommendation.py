"""
Menu Recommendations
====================

Providers turn a customer's question plus the menu snapshot into reply text.

- ``LlmRecommender``: builds the fixed Indonesian instruction around the
  menu list and asks the chat model (one attempt, no retry).
- ``TimeOfDayRecommender``: rule-based; picks up to three items matching the
  current part of the day, or the cheapest items when nothing matches.

``MenuAssistant`` is what the menu screen talks to: it reads the snapshot,
asks the configured provider and turns any failure into a canned apology,
so the chat box never shows a raw error.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .. import config
from ..formatting import group_thousands
from ..gateway import Backend
from .. import llm_client
from .catalog import MenuEntry, fetch_menu_snapshot

logger = logging.getLogger(__name__)

NO_MENU_REPLY = "Maaf, saat ini belum ada data menu yang tersedia. Silakan coba lagi nanti."
EMPTY_REPLY = "Maaf, saya tidak bisa memberikan rekomendasi saat ini. Silakan coba lagi."
ASSISTANT_ERROR_REPLY = "Maaf, terjadi kesalahan saat menghubungi asisten. Silakan coba lagi nanti."
OFF_TOPIC_REPLY = f"Maaf, aku hanya bisa bantu rekomendasi menu {config.STORE_NAME}."

SYSTEM_PROMPT_TEMPLATE = """Kamu adalah asisten rekomendasi menu untuk restoran {store}.

ATURAN PENTING:
1. Jawab SELALU dalam Bahasa Indonesia yang sopan dan ramah
2. HANYA rekomendasikan menu yang ada di daftar di bawah
3. JANGAN mengarang atau menyebutkan menu yang tidak ada di daftar
4. Berikan maksimal 5 rekomendasi
5. Format jawaban:
   1. Nama Menu - RpHarga (Kategori)
   2. ...
6. Jika user tanya di luar menu (misal "cuaca"), jawab: "{refusal}"

DAFTAR MENU TERSEDIA ({count} item):
{menu_context}

Sekarang bantu customer dengan pertanyaan mereka tentang menu."""


def menu_context_line(entry: MenuEntry) -> str:
    description = f" - {entry.description}" if entry.description else ""
    category = entry.category or "Lainnya"
    return f"• {entry.name} ({category}): Rp{group_thousands(entry.price)}{description}"


def build_system_prompt(menu: List[MenuEntry]) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        store=config.STORE_NAME,
        refusal=OFF_TOPIC_REPLY,
        count=len(menu),
        menu_context="\n".join(menu_context_line(m) for m in menu),
    )


class RecommendationProvider(ABC):
    @abstractmethod
    def recommend(self, message: str, menu: List[MenuEntry]) -> str:
        """Return reply text recommending items from ``menu``."""


class LlmRecommender(RecommendationProvider):
    """
    Recommendations from the chat model.

    Args:
        complete: function(system_prompt, user_message) -> text or None;
            defaults to llm_client.complete_chat
    """

    def __init__(self, complete: Optional[Callable[[str, str], Optional[str]]] = None):
        self._complete = complete or llm_client.complete_chat

    def recommend(self, message: str, menu: List[MenuEntry]) -> str:
        if not menu:
            return NO_MENU_REPLY

        logger.debug("Prepared %d menu items for context", len(menu))
        reply = self._complete(build_system_prompt(menu), message)
        return reply or EMPTY_REPLY


# (first hour, last hour, greeting, keywords)
DAY_SLOTS: List[Tuple[int, int, str, Tuple[str, ...]]] = [
    (5, 10, "Selamat pagi! Cocok untuk sarapan", ("roti", "bubur", "kopi", "teh", "susu", "telur")),
    (11, 14, "Selamat siang! Cocok untuk makan siang", ("nasi", "goreng", "ayam", "es")),
    (15, 17, "Selamat sore! Cocok untuk camilan sore", ("roti", "pisang", "gorengan", "snack", "es", "kopi")),
    (18, 23, "Selamat malam! Cocok untuk makan malam", ("indomie", "mie", "rebus", "kuah", "kopi", "susu")),
    (0, 4, "Selamat malam! Cocok untuk makan malam", ("indomie", "mie", "rebus", "kuah", "kopi", "susu")),
]


def day_slot(hour: int) -> Tuple[str, Tuple[str, ...]]:
    for first, last, greeting, keywords in DAY_SLOTS:
        if first <= hour <= last:
            return greeting, keywords
    return DAY_SLOTS[-1][2], DAY_SLOTS[-1][3]


class TimeOfDayRecommender(RecommendationProvider):
    """Rule-based recommendations by local hour; works without an API key."""

    max_items = 3

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock

    def recommend(self, message: str, menu: List[MenuEntry]) -> str:
        if not menu:
            return NO_MENU_REPLY

        greeting, keywords = day_slot(self._clock().hour)

        def matches(entry: MenuEntry) -> bool:
            haystack = f"{entry.name} {entry.category or ''}".lower()
            return any(k in haystack for k in keywords)

        picks = [m for m in menu if matches(m)][: self.max_items]
        if not picks:
            picks = sorted(menu, key=lambda m: m.price)[: self.max_items]

        lines = [
            f"{i}. {m.name} - Rp{group_thousands(m.price)} ({m.category or 'Lainnya'})"
            for i, m in enumerate(picks, start=1)
        ]
        return f"{greeting}:\n" + "\n".join(lines)


def get_recommendation_provider(name: Optional[str] = None) -> RecommendationProvider:
    name = (name or config.RECOMMENDER).lower()
    if name == "rules":
        return TimeOfDayRecommender()
    return LlmRecommender()


class MenuAssistant:
    """The menu screen's chat box."""

    def __init__(
        self,
        backend: Backend,
        provider: Optional[RecommendationProvider] = None,
        limit: int = 20,
    ):
        self.backend = backend
        self.provider = provider or get_recommendation_provider()
        self.limit = limit

    def reply(self, message: str) -> str:
        try:
            menu = fetch_menu_snapshot(self.backend, self.limit)
            return self.provider.recommend(message.strip(), menu)
        except Exception:
            logger.exception("Menu assistant failed")
            return ASSISTANT_ERROR_REPLY
