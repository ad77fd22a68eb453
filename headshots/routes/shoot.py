"""
Shoot routes: submit generation requests and reconcile their status.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..config import get_settings
from ..database import get_db
from ..deps import get_owned_studio, get_provider, get_reconciler
from ..limiter import limiter
from ..logging_config import get_logger
from ..models.prediction import Prediction
from ..models.studio import Studio
from ..responses import created, not_found, success, upstream_failure, validation_error
from ..schemas.prediction import ReconcileRequest, ShootCreate
from ..worker.exceptions import ArtifactUploadError, InvalidShootRequest, ProviderError, SubmissionFailed
from ..worker.provider import PredictionProvider
from ..worker.reconciler import StatusReconciler
from ..worker.shoot import ShootRequest, submit_shoot

settings = get_settings()

router = APIRouter(prefix="/api/studios", tags=["shoot"])
logger = get_logger("shoot_routes")


@router.post("/{studio_id}/shoot", status_code=201)
@limiter.limit(settings.shoot_rate_limit)
def create_shoot(
    request: Request,
    shoot: ShootCreate,
    studio: Studio = Depends(get_owned_studio),
    db: Session = Depends(get_db),
    provider: PredictionProvider = Depends(get_provider),
):
    """Create a prediction from a studio and submit it to the image provider."""
    try:
        prediction = submit_shoot(
            db,
            studio,
            ShootRequest(
                prompt=shoot.prompt,
                aspect_ratio=shoot.aspect_ratio,
                style=shoot.style,
                negative_prompt=shoot.negative_prompt,
            ),
            provider,
            settings,
        )
    except InvalidShootRequest as e:
        validation_error(str(e), {"field": e.field})
    except SubmissionFailed as e:
        upstream_failure("Failed to create prediction", {"prediction_id": e.prediction_id})

    return created(
        {"prediction_id": prediction.id, "status": prediction.status},
        "Prediction submitted",
    )


@router.post("/{studio_id}/shoot/result")
def get_shoot_result(
    body: ReconcileRequest,
    studio: Studio = Depends(get_owned_studio),
    db: Session = Depends(get_db),
    reconciler: StatusReconciler = Depends(get_reconciler),
):
    """Fetch the provider's status for a prediction and store it."""
    prediction = db.query(Prediction).filter(
        Prediction.id == body.prediction_id,
        Prediction.studio_id == studio.id,
    ).first()
    if not prediction:
        not_found("Prediction")

    if body.external_id and prediction.external_id and body.external_id != prediction.external_id:
        validation_error("external_id does not match this prediction", {"field": "external_id"})

    try:
        result = reconciler.reconcile(db, prediction)
    except ProviderError as e:
        logger.warning("reconcile_provider_error", prediction_id=prediction.id, error=str(e))
        upstream_failure("Could not fetch prediction status")
    except ArtifactUploadError as e:
        logger.warning("reconcile_upload_error", prediction_id=prediction.id, error=str(e))
        upstream_failure("Could not store generated image")

    return success(result.to_dict())
