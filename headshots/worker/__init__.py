from .exceptions import WorkerError, ProviderError, SubmissionFailed, ArtifactUploadError, InvalidShootRequest
from .provider import PredictionProvider, ProviderPrediction, ReplicateProvider
from .artifacts import ArtifactStore, LocalArtifactStore
from .shoot import ShootRequest, submit_shoot
from .reconciler import StatusReconciler, ReconcileResult
from .poller import PredictionPoller, PollingState

__all__ = [
    "WorkerError",
    "ProviderError",
    "SubmissionFailed",
    "ArtifactUploadError",
    "InvalidShootRequest",
    "PredictionProvider",
    "ProviderPrediction",
    "ReplicateProvider",
    "ArtifactStore",
    "LocalArtifactStore",
    "ShootRequest",
    "submit_shoot",
    "StatusReconciler",
    "ReconcileResult",
    "PredictionPoller",
    "PollingState",
]
