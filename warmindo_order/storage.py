"""
Object storage client for the Supabase storage API.

Only the two calls the storefront needs are implemented: uploading a
proof-of-payment file and building the public URL of an object in a
public bucket (menu photos, payment QR images, uploaded proofs).
"""

import logging
from typing import Optional
from urllib.parse import quote

import requests

from . import config
from .errors import BackendError

logger = logging.getLogger(__name__)


class ObjectStorage:
    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.base_url = (base_url if base_url is not None else config.SUPABASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else config.SUPABASE_SERVICE_ROLE_KEY
        self.timeout = timeout or config.STORAGE_TIMEOUT

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(path)}"

    def upload(self, bucket: str, name: str, data: bytes, content_type: str) -> str:
        """
        Upload ``data`` as ``bucket/name`` and return the stored object key.

        Raises:
            BackendError: storage not configured, network failure, or a
                non-success response (the response status becomes the code).
        """
        if not self.base_url:
            raise BackendError("Storage is not configured (SUPABASE_URL missing)")

        url = f"{self.base_url}/storage/v1/object/{bucket}/{quote(name)}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "apikey": self.api_key,
            "Content-Type": content_type,
            "x-upsert": "false",
        }

        logger.debug("Uploading %d bytes to %s/%s", len(data), bucket, name)
        try:
            response = requests.post(url, data=data, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise BackendError(f"Storage upload failed: {exc}") from exc

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error("Storage upload to %s failed: %s %s", bucket, response.status_code, message)
            raise BackendError(message, code=str(response.status_code))

        try:
            key = response.json().get("Key")
        except ValueError:
            key = None
        return key or f"{bucket}/{name}"


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    return body.get("message") or body.get("error") or f"HTTP {response.status_code}"
