"""
Prediction status persistence.

Every status write is a single conditional UPDATE filtered on the stored
statuses the new value may follow, so the webhook and polling paths can
race on the same row without regressing it.
"""

from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..logging_config import get_logger
from ..models.prediction import Prediction, PredictionStatus, TERMINAL_STATUSES, status_sources

logger = get_logger("jobs")


def write_status(db: Session, prediction: Prediction, status, **values) -> bool:
    """
    Persist `status` (plus extra column values) if the transition is allowed.

    Returns True when the row was written. On refusal the row is left as-is
    and `prediction` is refreshed to the stored state.
    """
    status = PredictionStatus(status)
    now = datetime.now(timezone.utc)
    values = {"status": status.value, "updated_at": now, **values}
    if status in TERMINAL_STATUSES:
        values.setdefault("completed_at", now)

    result = db.execute(
        update(Prediction)
        .where(
            Prediction.id == prediction.id,
            Prediction.status.in_(status_sources(status)),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(prediction)

    applied = result.rowcount == 1
    if not applied:
        logger.warning(
            "status_write_refused",
            prediction_id=prediction.id,
            stored=prediction.status,
            requested=status.value,
        )
    return applied

