import logging
from typing import Optional

from openai import OpenAI

from .config import OPENAI_API_KEY, OPENAI_MODEL

logger = logging.getLogger(__name__)

DEFAULT_MODEL = OPENAI_MODEL

# Generation settings for menu recommendations
TEMPERATURE = 0.7
MAX_TOKENS = 500

_client: Optional[OpenAI] = None

# Log configuration at DEBUG level (no sensitive data in INFO or higher)
logger.debug("OpenAI API key configured: %s", "Yes" if OPENAI_API_KEY else "No")
logger.debug("Using model: %s", DEFAULT_MODEL)


def get_client() -> OpenAI:
    """
    Return the shared OpenAI client, creating it on first use.

    The key is checked here rather than at import so that the storefront
    starts without one; the recommendation endpoints then fail per request.

    Raises:
        RuntimeError: if OPENAI_API_KEY is not configured
    """
    global _client
    if _client is None:
        if not OPENAI_API_KEY:
            raise RuntimeError("OPENAI_API_KEY not configured")
        # Explicitly pass the key so we don't depend on any global environment
        _client = OpenAI(api_key=OPENAI_API_KEY)
    return _client


def complete_chat(
    system_prompt: str,
    user_message: str,
    model: Optional[str] = None,
    temperature: float = TEMPERATURE,
    max_tokens: int = MAX_TOKENS,
) -> Optional[str]:
    """
    Run one chat completion: the system instruction plus the user's message.

    A single attempt per call; API errors propagate to the caller.

    Returns:
        The reply text, or None when the model returned no text.

    Raises:
        RuntimeError: missing API key or a response without choices
        openai.APIError: non-success response from the API
    """
    if model is None:
        model = DEFAULT_MODEL

    completion = get_client().chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
    )

    choices = getattr(completion, "choices", None)
    if not choices:
        raise RuntimeError("Malformed completion response: no choices")

    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not content or not content.strip():
        logger.warning("Completion returned no text (model=%s)", model)
        return None
    return content.strip()
