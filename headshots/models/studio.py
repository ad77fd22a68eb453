"""
Studio model: a user's personalized model configuration.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid
from ..database import Base


class Studio(Base):
    __tablename__ = "studios"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(50), nullable=False)  # man, woman, person
    model_user = Column(String(100), nullable=False)  # trigger word baked into the LoRA
    model_version = Column(String(255), nullable=False)  # owner/name[:version] on Replicate
    hf_lora = Column(String(500), nullable=False)
    default_hair_style = Column(String(100), nullable=False)
    default_user_height = Column(Integer, nullable=False)  # cm
    extra_info = Column(Text, nullable=True)
    images = Column(JSON, default=list)
    status = Column(String(20), default="ready")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="studios")
    predictions = relationship(
        "Prediction",
        back_populates="studio",
        cascade="all, delete-orphan",
        order_by="Prediction.created_at.desc()",
    )

    def to_dict(self, include_predictions: bool = False):
        """Convert to dictionary for API responses"""
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "model_user": self.model_user,
            "model_version": self.model_version,
            "hf_lora": self.hf_lora,
            "default_hair_style": self.default_hair_style,
            "default_user_height": self.default_user_height,
            "extra_info": self.extra_info,
            "images": self.images or [],
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_predictions:
            data["predictions"] = [p.to_dict() for p in self.predictions]
        return data
