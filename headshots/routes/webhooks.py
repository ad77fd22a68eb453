"""
Provider Webhook Routes
=======================
Completion callbacks from the image provider. The provider has no user
session; the prediction is identified by the `prediction_id` query
parameter registered when the shoot was submitted.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from typing import Optional
import base64
import binascii
import hashlib
import hmac
import json
import time

from ..config import get_settings
from ..database import get_db
from ..deps import get_reconciler
from ..limiter import limiter
from ..logging_config import get_logger
from ..models.prediction import Prediction
from ..responses import not_found, success, unauthorized, upstream_failure, validation_error
from ..worker.exceptions import ArtifactUploadError
from ..worker.provider import ProviderPrediction
from ..worker.reconciler import StatusReconciler

settings = get_settings()

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])
logger = get_logger("webhooks")

# Accepted clock skew for signed deliveries
SIGNATURE_TOLERANCE_SECONDS = 300


# ============================================================
# SIGNATURE VERIFICATION
# ============================================================

def sign_payload(secret: str, webhook_id: str, timestamp: str, body: bytes) -> str:
    """Base64 HMAC-SHA256 of `<id>.<timestamp>.<body>` keyed by the `whsec_` secret"""
    encoded_key = secret.split("_", 1)[1] if secret.startswith("whsec_") else secret
    key = base64.b64decode(encoded_key)
    signed_content = f"{webhook_id}.{timestamp}.".encode("utf-8") + body
    digest = hmac.new(key, signed_content, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_signature(
    secret: str,
    webhook_id: Optional[str],
    timestamp: Optional[str],
    signature_header: Optional[str],
    body: bytes,
    now: Optional[float] = None,
) -> bool:
    """Check a `webhook-signature` header (space separated `v1,<sig>` entries)."""
    if not (webhook_id and timestamp and signature_header):
        return False

    try:
        sent_at = int(timestamp)
    except ValueError:
        return False
    if abs((now or time.time()) - sent_at) > SIGNATURE_TOLERANCE_SECONDS:
        return False

    try:
        expected = sign_payload(secret, webhook_id, timestamp, body)
    except (binascii.Error, ValueError):
        logger.error("webhook_secret_invalid")
        return False

    for entry in signature_header.split():
        version, _, signature = entry.partition(",")
        if version == "v1" and hmac.compare_digest(signature, expected):
            return True
    return False


# ============================================================
# ENDPOINTS
# ============================================================

@router.post("/replicate")
@limiter.limit(settings.webhook_rate_limit)
async def replicate_webhook(
    request: Request,
    prediction_id: str,
    db: Session = Depends(get_db),
    reconciler: StatusReconciler = Depends(get_reconciler),
):
    """Apply a provider completion callback to the matching prediction."""
    body = await request.body()

    secret = get_settings().replicate_webhook_secret
    if secret and not verify_signature(
        secret,
        request.headers.get("webhook-id"),
        request.headers.get("webhook-timestamp"),
        request.headers.get("webhook-signature"),
        body,
    ):
        logger.warning("webhook_signature_rejected", prediction_id=prediction_id)
        unauthorized("Invalid webhook signature")

    try:
        payload = json.loads(body)
    except ValueError:
        validation_error("Webhook body is not valid JSON")

    try:
        remote = ProviderPrediction.from_payload(payload)
    except ValueError as e:
        validation_error(f"Webhook body is not a prediction: {e}")

    prediction = db.query(Prediction).filter(Prediction.id == prediction_id).first()
    if not prediction:
        not_found("Prediction")

    if prediction.external_id and remote.id and remote.id != prediction.external_id:
        logger.warning(
            "webhook_prediction_mismatch",
            prediction_id=prediction_id,
            stored_external_id=prediction.external_id,
            payload_external_id=remote.id,
        )
        validation_error("Webhook payload does not match this prediction")

    logger.info("webhook_received", prediction_id=prediction_id, remote_status=remote.status)

    try:
        result = await run_in_threadpool(reconciler.apply, db, prediction, remote)
    except ArtifactUploadError:
        # Non-2xx makes the provider retry the delivery
        upstream_failure("Could not store generated image")

    return success(result.to_dict())
