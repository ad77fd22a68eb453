from pydantic import BaseModel, Field, field_validator
from typing import Optional, List


class StudioCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: str = Field(min_length=1, max_length=50)
    model_user: str = Field(min_length=1, max_length=100)
    model_version: str = Field(min_length=1, max_length=255)
    hf_lora: str = Field(min_length=1, max_length=500)
    default_hair_style: str = Field(min_length=1, max_length=100)
    default_user_height: int = Field(gt=0, lt=300)
    extra_info: Optional[str] = None
    images: List[str] = Field(min_length=1)

    @field_validator("images")
    @classmethod
    def images_not_blank(cls, value: List[str]) -> List[str]:
        cleaned = [url.strip() for url in value if url and url.strip()]
        if not cleaned:
            raise ValueError("at least one reference image is required")
        return cleaned
