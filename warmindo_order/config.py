"""
Configuration Module for Warmindo Order
=======================================

This module centralizes the configuration settings, environment variables and
constants used throughout the storefront. Values are parsed once at import
time; tests override them by patching the module attributes.

Configuration Categories:
-------------------------
- **Backend**: Database URL and the Supabase project used for object storage.
  The database is the same Postgres instance Supabase manages.

- **Recommendation**: OpenAI credentials and model for the menu assistant.

- **Rate Limiting**: Request throttling on the chat endpoints (slowapi).

- **Client Storage**: TTL for session-scoped storage (the pre-order and the
  cached payment settings live there).

- **Workflow Constants**: Queue poll interval, retry delay for rate-limited
  backend calls, proof-of-payment size limit, default menu snapshot size.

Environment Variables:
----------------------
- DATABASE_URL: SQLAlchemy URL of the storefront database (required by db.py)
- SUPABASE_URL: Supabase project URL used for storage uploads/public URLs
- SUPABASE_SERVICE_ROLE_KEY: Key sent with storage uploads
- OPENAI_API_KEY / OPENAI_MODEL: Menu assistant credentials and model
- RATE_LIMIT_CHAT: Chat endpoint rate limit (default: "30 per minute")
- RATE_LIMIT_ENABLED: Enable/disable rate limiting (default: "true")
- SESSION_TTL_SECONDS: Session storage TTL (default: 3600)
- SESSION_MAX_CACHE_SIZE: Max session stores kept in memory (default: 1000)
- DEVICE_MAX_CACHE_SIZE: Max device stores kept in memory (default: 5000)
- MAX_MESSAGE_LENGTH: Max chat message length (default: 2000)
- CORS_ORIGINS: Comma-separated allowed origins (default: "*")
- QUEUE_POLL_SECONDS: Backstop poll interval for the live queue (default: 30)
- STORE_NAME: Display name used in prompts and share messages

Usage:
------
    from warmindo_order.config import (
        MAX_PROOF_BYTES,
        QUEUE_POLL_SECONDS,
        get_rate_limit_chat,
    )
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# .env lives at the project root (one level above warmindo_order/)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


# =============================================================================
# Store Configuration
# =============================================================================

STORE_NAME: str = os.getenv("STORE_NAME", "WarmindoGenz")


# =============================================================================
# Backend Configuration
# =============================================================================
# The database URL is read lazily by db.py so that importing config never
# fails; storage settings may be empty in development (uploads then fail
# with a backend error that the payment screen reports).

DATABASE_URL: str = os.getenv("DATABASE_URL", "")
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

# Storage buckets
MENU_IMAGES_BUCKET = "menu-images"
PAYMENT_CONFIG_BUCKET = "payment-config"
PAYMENT_PROOFS_BUCKET = "payment-proofs"

# Request timeout for storage calls, in seconds
STORAGE_TIMEOUT: int = int(os.getenv("STORAGE_TIMEOUT", "15"))


# =============================================================================
# Recommendation Configuration
# =============================================================================

OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Number of menu items sent to the model when the caller gives no limit
DEFAULT_MENU_LIMIT: int = int(os.getenv("DEFAULT_MENU_LIMIT", "15"))

# "llm" uses the chat bridge, "rules" the time-of-day recommender
RECOMMENDER: str = os.getenv("RECOMMENDER", "llm").lower()


# =============================================================================
# Rate Limiting Configuration
# =============================================================================

RATE_LIMIT_CHAT: str = os.getenv("RATE_LIMIT_CHAT", "30 per minute")
RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"


def get_rate_limit_chat() -> str:
    """
    Return the current chat rate limit.

    Allows dynamic override in tests without touching the module constant.
    """
    return RATE_LIMIT_CHAT


# =============================================================================
# Client Storage Configuration
# =============================================================================

# Session-scoped storage entries expire after this many idle seconds
SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", "3600"))

# Maximum number of session stores kept in memory; the least recently used
# are evicted when exceeded
SESSION_MAX_CACHE_SIZE: int = int(os.getenv("SESSION_MAX_CACHE_SIZE", "1000"))

# Same bound for device stores (carts)
DEVICE_MAX_CACHE_SIZE: int = int(os.getenv("DEVICE_MAX_CACHE_SIZE", "5000"))

# Headers identifying the caller's device (durable storage) and tab session
DEVICE_HEADER = "X-Device-Id"
SESSION_HEADER = "X-Session-Id"


# =============================================================================
# Workflow Constants
# =============================================================================

MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "2000"))

# Live queue backstop poll
QUEUE_POLL_SECONDS: float = float(os.getenv("QUEUE_POLL_SECONDS", "30"))

# One re-call after this delay when the backend signals rate limiting
RATE_LIMIT_RETRY_DELAY: float = float(os.getenv("RATE_LIMIT_RETRY_DELAY", "2.0"))

# Proof-of-payment upload limit
MAX_PROOF_BYTES: int = 5 * 1024 * 1024

# Tables offered by the get_free_tables fallback
FREE_TABLES_LIMIT = 10


# =============================================================================
# CORS Configuration
# =============================================================================

_cors_origins_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in _cors_origins_env.split(",")
    if origin.strip()
] or ["*"]
