"""
Shoot submission.

Turns a studio plus a user prompt into a provider generation request and
tracks it as a Prediction:
- pending while the request is prepared
- processing once the provider accepts it
- failed if the provider rejects it
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..config import Settings
from ..logging_config import get_logger
from ..models.prediction import Prediction, PredictionStatus
from ..models.studio import Studio
from .exceptions import InvalidShootRequest, ProviderError, SubmissionFailed
from .jobs import write_status
from .provider import PredictionProvider

logger = get_logger("shoot")


ASPECT_RATIOS = {
    "Portrait": "9:16",
    "Landscape": "16:9",
    "Square": "1:1",
}

DEFAULT_NEGATIVE_PROMPT = (
    "flaws in the eyes, flaws in the face, flaws, lowres, non-HDRi, low quality, worst quality, "
    "artifacts noise, text, watermark, glitch, deformed, mutated, ugly, disfigured, hands, "
    "low resolution, partially rendered objects, deformed or partially rendered eyes, deformed, "
    "deformed eyeballs, cross-eyed, blurry, border, picture frame"
)

# Fixed sampler settings for studio LoRAs
GENERATION_DEFAULTS = {
    "lora_scale": 0.8,
    "num_outputs": 1,
    "output_format": "jpg",
    "guidance_scale": 3.5,
    "output_quality": 80,
    "prompt_strength": 0.8,
    "num_inference_steps": 28,
    "disable_safety_checker": True,
}

PROMPT_PLACEHOLDER = "{prompt}"


@dataclass
class ShootRequest:
    """A user's request to generate an image from a studio"""
    prompt: str
    aspect_ratio: str
    style: Optional[str] = None
    negative_prompt: Optional[str] = None


def resolve_aspect_ratio(aspect_ratio: str) -> str:
    try:
        return ASPECT_RATIOS[aspect_ratio]
    except KeyError:
        raise InvalidShootRequest(
            f"Invalid aspect ratio '{aspect_ratio}'. Valid values: {', '.join(ASPECT_RATIOS)}",
            field="aspect_ratio",
        )


def build_prompt(studio: Studio, prompt: str) -> str:
    """Fill the subject description into the user's prompt and pin the trigger word."""
    subject = (
        f"{studio.model_user} a {studio.type} with {studio.default_hair_style} hair, "
        f"{studio.default_user_height}cm tall "
    )
    return prompt.replace(PROMPT_PLACEHOLDER, subject) + f", {studio.model_user} a {studio.type} "


def resolve_model_version(studio: Studio, lora_base_model: str) -> str:
    """Hugging Face LoRAs run on the shared base model, everything else on the studio's own model."""
    if studio.hf_lora and studio.hf_lora.startswith("huggingface.co/"):
        return lora_base_model
    if not studio.model_version:
        raise InvalidShootRequest("Studio has no model version", field="model_version")
    return studio.model_version


def build_generation_input(studio: Studio, request: ShootRequest) -> Dict[str, Any]:
    if not request.prompt or not request.prompt.strip():
        raise InvalidShootRequest("Prompt is required", field="prompt")

    return {
        "prompt": build_prompt(studio, request.prompt),
        "hf_lora": studio.hf_lora,
        "aspect_ratio": resolve_aspect_ratio(request.aspect_ratio),
        "negative_prompt": request.negative_prompt or DEFAULT_NEGATIVE_PROMPT,
        **GENERATION_DEFAULTS,
    }


def submit_shoot(
    db: Session,
    studio: Studio,
    request: ShootRequest,
    provider: PredictionProvider,
    settings: Settings,
) -> Prediction:
    """
    Create a prediction for `studio` and hand it to the provider.

    Validation happens before anything is stored or sent. A provider
    failure marks the prediction failed and raises SubmissionFailed.
    """
    generation_input = build_generation_input(studio, request)
    version = resolve_model_version(studio, settings.lora_base_model)

    prediction = Prediction(
        studio_id=studio.id,
        prompt=generation_input["prompt"],
        style=request.style,
        status=PredictionStatus.PENDING.value,
    )
    db.add(prediction)
    db.commit()
    db.refresh(prediction)

    log = logger.bind(prediction_id=prediction.id, studio_id=studio.id)
    log.info("prediction_created", aspect_ratio=request.aspect_ratio, style=request.style)

    try:
        remote = provider.create(
            version=version,
            input=generation_input,
            webhook=f"{settings.replicate_webhook_url}?prediction_id={prediction.id}",
            webhook_events_filter=["completed"],
        )
    except ProviderError as e:
        log.error("prediction_submit_failed", error=e)
        write_status(db, prediction, PredictionStatus.FAILED, error_message=str(e))
        raise SubmissionFailed(str(e), prediction.id, status_code=e.status_code) from e
    except Exception as e:
        # Unexpected errors fail the prediction too
        log.error("prediction_submit_crashed", error=e)
        write_status(db, prediction, PredictionStatus.FAILED, error_message="Provider request failed")
        raise SubmissionFailed(f"Provider request failed: {e}", prediction.id) from e

    if write_status(db, prediction, PredictionStatus.PROCESSING, external_id=remote.id):
        log.info("prediction_submitted", external_id=remote.id)
    else:
        # The completion webhook beat us here; keep its terminal state
        log.info("prediction_already_final", external_id=remote.id, status=prediction.status)
    return prediction
