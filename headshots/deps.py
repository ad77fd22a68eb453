"""
Shared FastAPI dependencies: provider clients and ownership lookups.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from .auth import get_required_user
from .config import Settings, get_settings
from .database import get_db
from .models.prediction import Prediction
from .models.studio import Studio
from .models.user import User
from .responses import forbidden, not_found
from .worker.artifacts import ArtifactStore, LocalArtifactStore
from .worker.provider import PredictionProvider, ReplicateProvider
from .worker.reconciler import StatusReconciler


def get_provider(settings: Settings = Depends(get_settings)) -> PredictionProvider:
    return ReplicateProvider(
        api_token=settings.replicate_api_token,
        base_url=settings.replicate_api_url,
        timeout=settings.replicate_timeout_seconds,
    )


def get_artifact_store(settings: Settings = Depends(get_settings)) -> ArtifactStore:
    return LocalArtifactStore(settings.media_dir, settings.media_base_url)


def get_reconciler(
    provider: PredictionProvider = Depends(get_provider),
    artifact_store: ArtifactStore = Depends(get_artifact_store),
) -> StatusReconciler:
    return StatusReconciler(provider, artifact_store)


def get_owned_studio(
    studio_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
) -> Studio:
    """Load a studio from the path, 404 if missing, 403 if owned by someone else."""
    studio = db.query(Studio).filter(Studio.id == studio_id).first()
    if not studio:
        not_found("Studio")
    if studio.user_id != current_user.id:
        forbidden()
    return studio


def get_owned_prediction(db: Session, prediction_id: str, user: User) -> Prediction:
    """Load a prediction, 404 if missing, 403 unless the caller owns its studio."""
    prediction = db.query(Prediction).filter(Prediction.id == prediction_id).first()
    if not prediction:
        not_found("Prediction")
    if prediction.owner_id != user.id:
        forbidden()
    return prediction
