from pydantic import BaseModel, Field
from typing import Optional


class ShootCreate(BaseModel):
    prompt: str = Field(min_length=1)
    negative_prompt: Optional[str] = None
    aspect_ratio: str = "Portrait"  # Portrait, Landscape, Square
    style: Optional[str] = Field(default=None, max_length=100)


class ReconcileRequest(BaseModel):
    prediction_id: str
    external_id: Optional[str] = None


class ShareUpdate(BaseModel):
    is_shared: bool
