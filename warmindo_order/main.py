# Load environment variables FIRST, before any module imports that need them
from dotenv import load_dotenv
load_dotenv()

import logging
import os

from .app_factory import create_app
from .config import STORE_NAME
from .logging_config import setup_logging

setup_logging()

logger = logging.getLogger(__name__)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info("Starting %s storefront on %s:%d", STORE_NAME, host, port)
    uvicorn.run("warmindo_order.main:app", host=host, port=port, log_config=None)
