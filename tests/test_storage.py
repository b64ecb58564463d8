"""
Tests for the object storage client.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from warmindo_order.errors import BackendError
from warmindo_order.storage import ObjectStorage


@pytest.fixture
def storage():
    return ObjectStorage(base_url="https://proj.supabase.test/", api_key="service-key", timeout=5)


def test_public_url(storage):
    assert storage.public_url("payment-proofs", "o1_1700000000000.png") == (
        "https://proj.supabase.test/storage/v1/object/public/payment-proofs/o1_1700000000000.png"
    )


def test_upload_posts_file_with_auth_headers(storage):
    response = MagicMock(status_code=200)
    response.json.return_value = {"Key": "payment-proofs/o1.png"}

    with patch("warmindo_order.storage.requests.post", return_value=response) as mock_post:
        key = storage.upload("payment-proofs", "o1.png", b"img", "image/png")

    assert key == "payment-proofs/o1.png"
    args, kwargs = mock_post.call_args
    assert args[0] == "https://proj.supabase.test/storage/v1/object/payment-proofs/o1.png"
    assert kwargs["data"] == b"img"
    assert kwargs["headers"]["Authorization"] == "Bearer service-key"
    assert kwargs["headers"]["apikey"] == "service-key"
    assert kwargs["headers"]["Content-Type"] == "image/png"
    assert kwargs["timeout"] == 5


def test_upload_error_status_becomes_backend_error(storage):
    response = MagicMock(status_code=413)
    response.json.return_value = {"message": "Payload too large"}

    with patch("warmindo_order.storage.requests.post", return_value=response):
        with pytest.raises(BackendError) as exc_info:
            storage.upload("payment-proofs", "o1.png", b"img", "image/png")

    assert exc_info.value.code == "413"
    assert exc_info.value.message == "Payload too large"


def test_network_failure_becomes_backend_error(storage):
    with patch("warmindo_order.storage.requests.post", side_effect=requests.ConnectionError("down")):
        with pytest.raises(BackendError):
            storage.upload("payment-proofs", "o1.png", b"img", "image/png")


def test_unconfigured_storage_refuses_upload():
    with patch("warmindo_order.storage.requests.post") as mock_post:
        with pytest.raises(BackendError):
            ObjectStorage(base_url="", api_key="").upload("b", "n", b"x", "image/png")
    mock_post.assert_not_called()
