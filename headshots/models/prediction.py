"""
Prediction model: one image generation request tracked from submission to result.

Status only moves forward (pending -> processing -> completed | failed).
Terminal states are final; writers go through `status_sources` so that a
conditional UPDATE can refuse a regression atomically.
"""
from enum import Enum
from typing import List

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from ..database import Base


class PredictionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({PredictionStatus.COMPLETED, PredictionStatus.FAILED})

_RANK = {
    PredictionStatus.PENDING: 0,
    PredictionStatus.PROCESSING: 1,
    PredictionStatus.COMPLETED: 2,
    PredictionStatus.FAILED: 2,
}


def is_terminal(status) -> bool:
    return PredictionStatus(status) in TERMINAL_STATUSES


def can_transition(current, new) -> bool:
    """True if a job in `current` may be written with `new`.

    Re-writing the same non-terminal status is allowed.
    """
    current, new = PredictionStatus(current), PredictionStatus(new)
    if current in TERMINAL_STATUSES:
        return False
    return _RANK[new] >= _RANK[current]


def status_sources(new) -> List[str]:
    """Stored statuses from which a write of `new` is accepted."""
    return [s.value for s in PredictionStatus if can_transition(s, new)]


class Prediction(Base):
    __tablename__ = "predictions"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    studio_id = Column(String(36), ForeignKey("studios.id", ondelete="CASCADE"), nullable=False, index=True)
    external_id = Column(String(100), nullable=True, index=True)  # provider prediction id
    status = Column(String(20), default=PredictionStatus.PENDING.value, nullable=False, index=True)
    result_url = Column(String(500), nullable=True)
    prompt = Column(Text, nullable=True)
    style = Column(String(100), nullable=True, index=True)
    is_shared = Column(Boolean, default=False, nullable=False, index=True)
    likes_count = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), index=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    studio = relationship("Studio", back_populates="predictions")
    favorites = relationship("Favorite", back_populates="prediction", cascade="all, delete-orphan")

    @property
    def owner_id(self):
        return self.studio.user_id if self.studio else None

    @property
    def can_share(self) -> bool:
        return self.status == PredictionStatus.COMPLETED.value and bool(self.result_url)

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": self.id,
            "studio_id": self.studio_id,
            "external_id": self.external_id,
            "status": self.status,
            "result_url": self.result_url,
            "prompt": self.prompt,
            "style": self.style,
            "is_shared": self.is_shared,
            "likes_count": self.likes_count,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
