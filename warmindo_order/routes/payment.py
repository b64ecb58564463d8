"""
Payment Routes
==============

- GET  /pay/{code}: order, items and payment panel for a payment code
- POST /pay/{code}/proof: upload a proof-of-payment image (multipart field
  ``file``)

A lookup overtaken by a newer one from the same session answers 409.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from ..config import MAX_PROOF_BYTES
from ..deps import get_payment
from ..schemas.payment import PaymentLookupOut, ProofSubmitOut
from ..services.payment import PaymentController

logger = logging.getLogger(__name__)

payment_router = APIRouter(prefix="/pay", tags=["Payment"])


@payment_router.get("/{code}", response_model=PaymentLookupOut)
def lookup_payment(code: str, controller: PaymentController = Depends(get_payment)) -> PaymentLookupOut:
    return controller.lookup(code)


@payment_router.post("/{code}/proof", response_model=ProofSubmitOut)
def submit_proof(
    code: str,
    file: UploadFile = File(...),
    controller: PaymentController = Depends(get_payment),
) -> ProofSubmitOut:
    # One byte past the limit is enough to reject oversized files
    data = file.file.read(MAX_PROOF_BYTES + 1)
    return controller.submit_proof(code, file.filename, file.content_type, data)
