"""
Prediction routes: owner view and public sharing.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import update
from sqlalchemy.orm import Session

from ..auth import get_required_user
from ..database import get_db
from ..deps import get_owned_prediction
from ..logging_config import get_logger
from ..models.prediction import Prediction, PredictionStatus
from ..models.user import User
from ..responses import success, validation_error
from ..schemas.prediction import ShareUpdate

router = APIRouter(prefix="/api/predictions", tags=["predictions"])
logger = get_logger("predictions")

SHARE_PRECONDITION = "Only completed predictions with images can be shared"


@router.get("/{prediction_id}")
def get_prediction(
    prediction_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Get a single prediction (owner only)."""
    prediction = get_owned_prediction(db, prediction_id, current_user)
    return success(prediction.to_dict())


@router.get("/{prediction_id}/share")
def get_share_status(
    prediction_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Get the share flag and whether the prediction may be shared."""
    prediction = get_owned_prediction(db, prediction_id, current_user)
    return success({
        "prediction_id": prediction.id,
        "is_shared": prediction.is_shared,
        "can_share": prediction.can_share,
    })


@router.patch("/{prediction_id}/share")
def update_share_status(
    prediction_id: str,
    share: ShareUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Share a finished prediction in the public gallery, or make it private."""
    prediction = get_owned_prediction(db, prediction_id, current_user)

    if share.is_shared and not prediction.can_share:
        validation_error(SHARE_PRECONDITION, {"status": prediction.status})

    conditions = [Prediction.id == prediction.id]
    if share.is_shared:
        # Re-checked in the statement itself so the flag can't land on an unfinished row
        conditions += [
            Prediction.status == PredictionStatus.COMPLETED.value,
            Prediction.result_url.isnot(None),
        ]

    result = db.execute(
        update(Prediction)
        .where(*conditions)
        .values(is_shared=share.is_shared, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(prediction)

    if result.rowcount != 1:
        validation_error(SHARE_PRECONDITION, {"status": prediction.status})

    logger.info("prediction_share_updated", prediction_id=prediction.id, is_shared=prediction.is_shared)
    return success(
        {
            "prediction_id": prediction.id,
            "is_shared": prediction.is_shared,
            "result_url": prediction.result_url,
            "prompt": prediction.prompt,
            "style": prediction.style,
            "studio_name": prediction.studio.name,
        },
        "Prediction shared publicly" if prediction.is_shared else "Prediction made private",
    )
