"""
Studio routes: create and browse a user's studios.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_required_user
from ..database import get_db
from ..deps import get_owned_studio
from ..logging_config import get_logger
from ..models.studio import Studio
from ..models.user import User
from ..responses import created, success
from ..schemas.studio import StudioCreate

router = APIRouter(prefix="/api/studios", tags=["studios"])
logger = get_logger("studios")


@router.post("", status_code=201)
def create_studio(
    studio_data: StudioCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Create a studio for the current user."""
    studio = Studio(user_id=current_user.id, **studio_data.model_dump())
    db.add(studio)
    db.commit()
    db.refresh(studio)

    logger.info("studio_created", studio_id=studio.id, user_id=current_user.id)
    return created(studio.to_dict(), "Studio created")


@router.get("")
def list_studios(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """List the current user's studios, newest first."""
    studios = (
        db.query(Studio)
        .filter(Studio.user_id == current_user.id)
        .order_by(Studio.created_at.desc())
        .all()
    )
    return success([s.to_dict() for s in studios])


@router.get("/{studio_id}")
def get_studio(studio: Studio = Depends(get_owned_studio)):
    """Get a studio with its predictions (owner only)."""
    return success(studio.to_dict(include_predictions=True))
