"""
Exceptions raised by the shoot, reconciliation and provider layers.
Routes translate these into API error responses.
"""


class WorkerError(Exception):
    """Base exception for prediction lifecycle errors"""
    pass


class ProviderError(WorkerError):
    """Raised when the image provider rejects a request or cannot be reached"""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ArtifactUploadError(WorkerError):
    """Raised when a generated image cannot be copied to storage"""
    pass


class InvalidShootRequest(WorkerError):
    """Raised when a shoot request is rejected before reaching the provider"""
    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class SubmissionFailed(ProviderError):
    """Raised when a prediction was stored but the provider refused it"""
    def __init__(self, message: str, prediction_id: str, status_code: int = None):
        super().__init__(message, status_code=status_code)
        self.prediction_id = prediction_id
