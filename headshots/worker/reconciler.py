"""
Status Reconciler

Applies the provider's view of a prediction to the stored row. Used by
both the completion webhook (push) and the polling endpoint (pull).

Only a definitive provider answer mutates status: a failed provider query
or a failed image copy is reported to the caller and leaves the row alone.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..logging_config import get_logger, timed
from ..models.prediction import Prediction, PredictionStatus, is_terminal
from .artifacts import ArtifactStore, artifact_filename
from .jobs import write_status
from .provider import PredictionProvider, ProviderPrediction

logger = get_logger("reconciler")

SUCCEEDED = "succeeded"
FAILED_STATES = frozenset({"failed", "canceled"})


@dataclass
class ReconcileResult:
    """Stored state of a prediction after reconciliation"""
    prediction_id: str
    external_id: Optional[str]
    status: str
    result_url: Optional[str]
    prompt: Optional[str]

    @classmethod
    def from_prediction(cls, prediction: Prediction) -> "ReconcileResult":
        return cls(
            prediction_id=prediction.id,
            external_id=prediction.external_id,
            status=prediction.status,
            result_url=prediction.result_url,
            prompt=prediction.prompt,
        )

    def to_dict(self):
        return {
            "prediction_id": self.prediction_id,
            "external_id": self.external_id,
            "status": self.status,
            "result_url": self.result_url,
            "prompt": self.prompt,
        }


class StatusReconciler:
    """Maps provider prediction states onto stored predictions"""

    def __init__(self, provider: PredictionProvider, artifact_store: ArtifactStore):
        self.provider = provider
        self.artifact_store = artifact_store

    @timed(logger)
    def reconcile(self, db: Session, prediction: Prediction) -> ReconcileResult:
        """
        Query the provider for `prediction` and apply the answer.

        Terminal predictions are returned as stored without contacting the
        provider. Raises ProviderError if the query fails.
        """
        if is_terminal(prediction.status) or not prediction.external_id:
            return ReconcileResult.from_prediction(prediction)

        remote = self.provider.get(prediction.external_id)
        return self.apply(db, prediction, remote)

    def apply(self, db: Session, prediction: Prediction, remote: ProviderPrediction) -> ReconcileResult:
        """
        Apply a provider prediction state to the stored row.

        Raises ArtifactUploadError if a finished image cannot be copied.
        """
        log = logger.bind(prediction_id=prediction.id, external_id=remote.id)

        if is_terminal(prediction.status):
            log.debug("reconcile_skipped_terminal", status=prediction.status)
            return ReconcileResult.from_prediction(prediction)

        extra = {}
        if not prediction.external_id and remote.id:
            extra["external_id"] = remote.id

        if remote.status == SUCCEEDED and remote.output:
            # Copy before writing so a failed copy leaves the row retryable
            result_url = self.artifact_store.upload(remote.output[0], artifact_filename())
            applied = write_status(db, prediction, PredictionStatus.COMPLETED, result_url=result_url, **extra)
            if applied:
                log.info("prediction_completed", result_url=result_url)
            else:
                log.warning("prediction_completed_elsewhere", orphaned_url=result_url, status=prediction.status)
        elif remote.status == SUCCEEDED or remote.status in FAILED_STATES:
            error = remote.error or (
                "Provider returned no output" if remote.status == SUCCEEDED else f"Provider status: {remote.status}"
            )
            if write_status(db, prediction, PredictionStatus.FAILED, error_message=error, **extra):
                log.warning("prediction_failed", remote_status=remote.status, error=error)
        else:
            write_status(db, prediction, PredictionStatus.PROCESSING, **extra)
            log.debug("prediction_processing", remote_status=remote.status)

        return ReconcileResult.from_prediction(prediction)
