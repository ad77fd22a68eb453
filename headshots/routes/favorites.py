"""
Favorites routes. Each add/remove changes the favorite row and the
prediction's `likes_count` in the same transaction.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import case, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import get_required_user
from ..database import get_db
from ..logging_config import get_logger
from ..models.favorite import Favorite
from ..models.prediction import Prediction
from ..models.user import User
from ..responses import conflict, not_found, success

router = APIRouter(prefix="/api/favorites", tags=["favorites"])
logger = get_logger("favorites")


class FavoriteCreate(BaseModel):
    """Schema for adding a favorite."""
    prediction_id: str


def favorite_to_dict(favorite: Favorite) -> dict:
    prediction = favorite.prediction
    return {
        "id": favorite.id,
        "prediction_id": favorite.prediction_id,
        "created_at": favorite.created_at.isoformat() if favorite.created_at else None,
        "prediction": {
            "id": prediction.id,
            "result_url": prediction.result_url,
            "prompt": prediction.prompt,
            "style": prediction.style,
            "status": prediction.status,
            "is_shared": prediction.is_shared,
            "likes_count": prediction.likes_count,
            "created_at": prediction.created_at.isoformat() if prediction.created_at else None,
        },
    }


def _likes_count(db: Session, prediction_id: str) -> int:
    return db.query(Prediction.likes_count).filter(Prediction.id == prediction_id).scalar() or 0


@router.get("")
def list_favorites(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """List the current user's favorites, newest first."""
    favorites = (
        db.query(Favorite)
        .join(Prediction, Favorite.prediction_id == Prediction.id)
        .filter(Favorite.user_id == current_user.id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        .all()
    )
    return success([favorite_to_dict(f) for f in favorites])


@router.post("", status_code=201)
def add_favorite(
    body: FavoriteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Favorite a prediction and increment its like counter."""
    prediction = db.query(Prediction).filter(Prediction.id == body.prediction_id).first()
    # Private predictions are only visible to their owner
    if not prediction or not (prediction.is_shared or prediction.owner_id == current_user.id):
        not_found("Prediction")

    existing = db.query(Favorite).filter(
        Favorite.user_id == current_user.id,
        Favorite.prediction_id == prediction.id,
    ).first()
    if existing:
        conflict("Already in favorites")

    try:
        db.add(Favorite(user_id=current_user.id, prediction_id=prediction.id))
        db.flush()
        db.execute(
            update(Prediction)
            .where(Prediction.id == prediction.id)
            .values(likes_count=Prediction.likes_count + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        conflict("Already in favorites")

    likes_count = _likes_count(db, prediction.id)
    logger.info("favorite_added", prediction_id=prediction.id, user_id=current_user.id, likes_count=likes_count)
    return success({"prediction_id": prediction.id, "likes_count": likes_count}, "Added to favorites")


@router.delete("/{prediction_id}")
def remove_favorite(
    prediction_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_required_user),
):
    """Remove a favorite and decrement the like counter (never below zero)."""
    result = db.execute(
        delete(Favorite)
        .where(Favorite.user_id == current_user.id, Favorite.prediction_id == prediction_id)
    )
    if result.rowcount == 0:
        db.rollback()
        not_found("Favorite")

    db.execute(
        update(Prediction)
        .where(Prediction.id == prediction_id)
        .values(likes_count=case((Prediction.likes_count > 0, Prediction.likes_count - 1), else_=0))
        .execution_options(synchronize_session=False)
    )
    db.commit()

    likes_count = _likes_count(db, prediction_id)
    logger.info("favorite_removed", prediction_id=prediction_id, user_id=current_user.id, likes_count=likes_count)
    return success({"prediction_id": prediction_id, "likes_count": likes_count}, "Removed from favorites")
