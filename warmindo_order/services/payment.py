"""
Payment Service
===============

The payment screen finds an order by its payment code and shows what to do
next. This module observes the order's payment state; it never moves it
forward. Staff verification does.

Panels:
-------
- paid:          status is paid or later; nothing to do
- cash:          pay at the counter; shows the total
- instructions:  QRIS image, bank account or e-wallet number, plus the
                 proof upload
- pending:       a proof was just uploaded and waits for verification

Payment Settings:
-----------------
The reference data for each non-cash method lives in ``settings`` rows
``payment.qris``, ``payment.transfer`` and ``payment.ewallet`` with a JSON
``value`` and an optional ``image_path``. It is read once per session and
cached in session storage. A failed read yields "not configured" for every
method and is not cached, so the next lookup tries again.

Proof Upload:
-------------
The image goes to the ``payment-proofs`` bucket as
``{order_id}_{millis}.{ext}``; its public URL is attached to the order with
the ``update_order_proof_url`` server function (keyed by payment code), and
the order is read again to pick up any status change the function made.
Uploading again simply replaces the URL.
"""

import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

from .. import config
from ..client_store import KeyValueStore, PAYMENT_SETTINGS_KEY
from ..errors import (
    BackendError,
    NotFound,
    Superseded,
    ValidationFailed,
    with_rate_limit_retry,
)
from ..formatting import payment_method_label, rupiah
from ..gateway import Backend
from ..schemas.orders import OrderItemOut, order_out
from ..schemas.payment import PaymentInstructions, PaymentLookupOut, PaymentPanel, ProofSubmitOut
from ..storage import ObjectStorage
from .helpers import NON_CASH_METHODS, PAID_OR_LATER_STATUSES, PLACEHOLDER_IMAGE, RequestSequencer

logger = logging.getLogger(__name__)

SETTINGS_KEYS = {
    "payment.ewallet": "ewallet",
    "payment.qris": "qris",
    "payment.transfer": "transfer",
}

CODE_REQUIRED = "Silakan masukkan kode pembayaran"
CODE_NOT_FOUND = "Kode pembayaran tidak ditemukan"
DEFAULT_QRIS_CAPTION = "Scan QRIS berikut lalu unggah bukti pembayaran."
SAFE_EXTENSION = re.compile(r"[a-z0-9]{1,5}")


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def _empty_settings() -> Dict[str, Optional[Dict[str, Any]]]:
    return {method: None for method in SETTINGS_KEYS.values()}


def decode_settings_rows(rows) -> Dict[str, Optional[Dict[str, Any]]]:
    """Map ``settings`` rows onto ``{qris, transfer, ewallet}`` config dicts."""
    settings = _empty_settings()
    for row in rows or []:
        method = SETTINGS_KEYS.get(row.get("key"))
        if method is None:
            continue
        value = row.get("value")
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning("Setting %s is not JSON; ignoring its value", row.get("key"))
                value = None
        if not isinstance(value, dict):
            value = {}
        settings[method] = {**value, "image_path": row.get("image_path") or value.get("image_path")}
    return settings


class PaymentSettingsCache:
    """Payment reference settings, cached in the session's storage."""

    def __init__(self, backend: Backend, store: KeyValueStore):
        self.backend = backend
        self.store = store

    def load(self) -> Dict[str, Optional[Dict[str, Any]]]:
        cached = self.store.get(PAYMENT_SETTINGS_KEY)
        if cached:
            try:
                return json.loads(cached)
            except ValueError:
                self.store.delete(PAYMENT_SETTINGS_KEY)

        try:
            rows = with_rate_limit_retry(self.backend.get_settings, list(SETTINGS_KEYS))
        except BackendError as exc:
            logger.error("Failed to load payment settings: %s", exc.message)
            return _empty_settings()

        settings = decode_settings_rows(rows)
        self.store.set(PAYMENT_SETTINGS_KEY, json.dumps(settings))
        return settings


def public_asset_url(storage: ObjectStorage, image_path: Optional[str]) -> str:
    if not image_path:
        return PLACEHOLDER_IMAGE
    if image_path.lower().startswith(("http://", "https://")):
        return image_path
    return storage.public_url(config.PAYMENT_CONFIG_BUCKET, image_path)


def render_instructions(
    method: str,
    settings: Dict[str, Optional[Dict[str, Any]]],
    payment_code: Optional[str],
    storage: ObjectStorage,
) -> PaymentInstructions:
    label = payment_method_label(method)
    cfg = settings.get(method) if method in NON_CASH_METHODS else None
    if cfg is None:
        return PaymentInstructions(
            method=method,
            method_label=label,
            configured=False,
            warning=f"Pengaturan untuk metode {label} belum dikonfigurasi. Silakan hubungi kasir.",
        )

    if method == "qris":
        return PaymentInstructions(
            method=method,
            method_label=label,
            image_url=public_asset_url(storage, cfg.get("image_path")),
            caption=cfg.get("caption") or DEFAULT_QRIS_CAPTION,
        )

    if method == "transfer":
        account_no = str(cfg.get("account_no") or "")
        return PaymentInstructions(
            method=method,
            method_label=label,
            bank_name=cfg.get("bank_name") or "Bank",
            account_no=account_no,
            account_name=cfg.get("account_name") or "",
            reference=f"Kode {payment_code or ''}",
            copy_values=[account_no] if account_no else [],
        )

    number = str(cfg.get("number") or "")
    return PaymentInstructions(
        method=method,
        method_label=label,
        provider=cfg.get("provider") or "e-Wallet",
        number=number,
        name=cfg.get("name") or "",
        copy_values=[number] if number else [],
    )


def is_paid(order: Dict[str, Any]) -> bool:
    return order.get("status") in PAID_OR_LATER_STATUSES


def build_panel(
    order: Dict[str, Any],
    settings: Dict[str, Optional[Dict[str, Any]]],
    storage: ObjectStorage,
) -> PaymentPanel:
    total = rupiah(order.get("total_amount"))
    if is_paid(order):
        return PaymentPanel(
            state="paid",
            title="Pembayaran Berhasil",
            message="Pesanan Anda telah dibayar dan sedang diproses",
            total_display=total,
        )
    if order.get("payment_method") == "cash":
        return PaymentPanel(
            state="cash",
            title="Pembayaran Tunai",
            message="Silakan bayar di kasir dengan total:",
            total_display=total,
        )
    method = order.get("payment_method") or ""
    return PaymentPanel(
        state="instructions",
        title=f"Pembayaran {payment_method_label(method)}",
        message="Selesaikan pembayaran lalu unggah bukti pembayaran.",
        total_display=total,
        upload_enabled=method in NON_CASH_METHODS,
        instructions=render_instructions(method, settings, order.get("payment_code"), storage),
    )


def pending_panel(order: Dict[str, Any]) -> PaymentPanel:
    return PaymentPanel(
        state="pending",
        title="Menunggu Verifikasi",
        message="Bukti pembayaran Anda telah tersimpan dan menunggu verifikasi staff",
        total_display=rupiah(order.get("total_amount")),
    )


def validate_proof(data: Optional[bytes], content_type: Optional[str]) -> None:
    if not data:
        raise ValidationFailed("Silakan pilih file bukti pembayaran", field="proof")
    if len(data) > config.MAX_PROOF_BYTES:
        raise ValidationFailed("Ukuran file maksimal 5MB", field="proof")
    if not (content_type or "").startswith("image/"):
        raise ValidationFailed("File harus berupa gambar", field="proof")


def proof_file_name(order_id: str, filename: Optional[str], content_type: str, millis: int) -> str:
    """Object name for a proof; the extension never carries path characters."""
    candidates = []
    if filename and "." in filename:
        candidates.append(filename.rsplit(".", 1)[-1].lower())
    candidates.append(content_type.split("/", 1)[-1].lower())
    ext = next((c for c in candidates if SAFE_EXTENSION.fullmatch(c)), "bin")
    return f"{order_id}_{millis}.{ext}"


class PaymentController:
    """
    Lookup and proof submission for one session.

    Args:
        backend: the storefront backend
        settings: the session's payment settings cache
        sequencer: shared per session so that only the newest lookup wins
        clock: seconds since the epoch, used for proof file names
    """

    def __init__(
        self,
        backend: Backend,
        settings: PaymentSettingsCache,
        sequencer: Optional[RequestSequencer] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend
        self.settings = settings
        self.sequencer = sequencer or RequestSequencer()
        self.clock = clock

    def lookup(self, code: str) -> PaymentLookupOut:
        """
        Find an order by payment code and build its payment panel.

        Raises:
            ValidationFailed: empty code
            Superseded: a newer lookup started while this one was running
        """
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationFailed(CODE_REQUIRED, field="code")

        token = self.sequencer.next()
        order = with_rate_limit_retry(self.backend.find_order_by_code, normalized)
        if order is None:
            self._check_latest(token)
            return PaymentLookupOut().notify("error", CODE_NOT_FOUND)

        with ThreadPoolExecutor(max_workers=2) as pool:
            items_future = pool.submit(with_rate_limit_retry, self.backend.get_order_items, order["id"])
            settings_future = pool.submit(self.settings.load)
            items = items_future.result()
            settings = settings_future.result()

        self._check_latest(token)
        result = PaymentLookupOut(
            order=order_out(order),
            items=[OrderItemOut.model_validate(item) for item in items],
            panel=build_panel(order, settings, self.backend.storage),
            receipt_url=f"receipt?id={order['id']}",
        )
        if order.get("proof_url") and result.panel.state == "instructions":
            result.notify("info", "Bukti pembayaran sudah diunggah dan menunggu verifikasi")
        return result

    def submit_proof(
        self,
        code: str,
        filename: Optional[str],
        content_type: Optional[str],
        data: Optional[bytes],
    ) -> ProofSubmitOut:
        """
        Upload a proof-of-payment image and attach it to the order.

        File checks run before anything is uploaded.

        Raises:
            ValidationFailed: empty code, missing/oversized/non-image file, or
                an order that takes no proof (cash or already paid)
            NotFound: unknown payment code
            BackendError: upload or server function failed
        """
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationFailed(CODE_REQUIRED, field="code")
        validate_proof(data, content_type)

        order = with_rate_limit_retry(self.backend.find_order_by_code, normalized)
        if order is None:
            raise NotFound(CODE_NOT_FOUND)
        if order.get("payment_method") not in NON_CASH_METHODS or is_paid(order):
            raise ValidationFailed("Pesanan ini tidak memerlukan bukti pembayaran", field="proof")

        name = proof_file_name(order["id"], filename, content_type, int(self.clock() * 1000))
        storage = self.backend.storage
        logger.debug("Uploading proof to %s/%s", config.PAYMENT_PROOFS_BUCKET, name)
        storage.upload(config.PAYMENT_PROOFS_BUCKET, name, data, content_type)
        proof_url = storage.public_url(config.PAYMENT_PROOFS_BUCKET, name)

        with_rate_limit_retry(self.backend.update_order_proof_url, normalized, proof_url)
        logger.info("Proof attached to order %s", order["id"])

        try:
            refreshed = self.backend.get_order(order["id"]) or order
        except BackendError as exc:
            logger.warning("Could not refresh order %s after proof upload: %s", order["id"], exc.message)
            refreshed = order

        result = ProofSubmitOut(
            order=order_out(refreshed),
            panel=pending_panel(refreshed),
            proof_url=proof_url,
        )
        result.notify("success", "Bukti pembayaran berhasil diupload dan disimpan.")
        return result

    def _check_latest(self, token: int) -> None:
        if not self.sequencer.is_latest(token):
            logger.debug("Dropping stale payment lookup %d", token)
            raise Superseded()
