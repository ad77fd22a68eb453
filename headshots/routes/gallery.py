"""
Public gallery routes (no auth required).
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import extract, func
from sqlalchemy.orm import Session
from typing import Optional

from ..config import get_settings
from ..database import get_db
from ..models.prediction import Prediction, PredictionStatus
from ..models.studio import Studio
from ..models.user import User
from ..responses import paginated, success, validation_error

settings = get_settings()

router = APIRouter(prefix="/api/gallery", tags=["gallery"])

SORT_OPTIONS = ("newest", "popular", "trending")

# Trending = likes * 0.7 - age_in_days * 0.3. "now" is the same for every row,
# so ordering by likes * 0.7 + created_day * 0.3 gives the same ranking.
LIKES_WEIGHT = 0.7
RECENCY_WEIGHT = 0.3
SECONDS_PER_DAY = 86400.0


def public_conditions():
    return [
        Prediction.is_shared.is_(True),
        Prediction.status == PredictionStatus.COMPLETED.value,
        Prediction.result_url.isnot(None),
    ]


def sort_order(sort_by: str):
    if sort_by == "popular":
        return [Prediction.likes_count.desc(), Prediction.created_at.desc()]
    if sort_by == "trending":
        created_day = extract("epoch", Prediction.created_at) / SECONDS_PER_DAY
        score = Prediction.likes_count * LIKES_WEIGHT + created_day * RECENCY_WEIGHT
        return [score.desc(), Prediction.created_at.desc()]
    return [Prediction.created_at.desc()]


def gallery_item(prediction: Prediction, display_name: Optional[str], avatar_url: Optional[str]) -> dict:
    """Public card for a shared prediction; exposes display info only."""
    return {
        "id": prediction.id,
        "image_url": prediction.result_url,
        "prompt": prediction.prompt,
        "style": prediction.style,
        "likes_count": prediction.likes_count,
        "created_at": prediction.created_at.isoformat() if prediction.created_at else None,
        "user_name": display_name or "Anonymous",
        "user_avatar": avatar_url,
    }


@router.get("/public")
def public_gallery(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    style: Optional[str] = None,
    sort_by: str = "newest",
    db: Session = Depends(get_db),
):
    """List shared, completed predictions with pagination, style filter and sorting."""
    if sort_by not in SORT_OPTIONS:
        validation_error(
            f"Invalid sort_by '{sort_by}'. Valid values: {', '.join(SORT_OPTIONS)}",
            {"field": "sort_by"},
        )

    limit = min(limit or settings.gallery_default_limit, settings.gallery_max_limit)

    conditions = public_conditions()
    if style:
        conditions.append(Prediction.style == style)

    total = db.query(func.count(Prediction.id)).filter(*conditions).scalar() or 0

    rows = (
        db.query(Prediction, User.display_name, User.avatar_url)
        .join(Studio, Prediction.studio_id == Studio.id)
        .join(User, Studio.user_id == User.id)
        .filter(*conditions)
        .order_by(*sort_order(sort_by), Prediction.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return paginated(
        "predictions",
        [gallery_item(p, name, avatar) for p, name, avatar in rows],
        total,
        page,
        limit,
        filters={"style": style, "sort_by": sort_by},
    )


@router.get("/styles")
def gallery_styles(db: Session = Depends(get_db)):
    """Distinct styles present in the public gallery, for filtering."""
    rows = (
        db.query(Prediction.style)
        .filter(*public_conditions(), Prediction.style.isnot(None))
        .distinct()
        .order_by(Prediction.style)
        .all()
    )
    return success([style for (style,) in rows if style])
