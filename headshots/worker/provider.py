"""
Image Provider Integration

Thin client for the external image generation service (Replicate):
- create a prediction with a completion webhook
- fetch a prediction's current state

`PredictionProvider` is the capability interface the shoot and
reconciliation code depend on; tests substitute a fake.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ..logging_config import get_logger
from .exceptions import ProviderError

logger = get_logger("provider")


@dataclass
class ProviderPrediction:
    """A prediction as reported by the provider"""
    id: str
    status: str  # starting, processing, succeeded, failed, canceled
    output: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ProviderPrediction":
        """Build from a provider JSON body (API response or webhook).

        Raises:
            ValueError: if the body is not an object or `output` is not a URL or list of URLs
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")

        output = payload.get("output")
        if output is None:
            output = []
        elif isinstance(output, str):
            output = [output]
        elif not isinstance(output, list):
            raise ValueError(f"Unexpected output type {type(output).__name__}")
        return cls(
            id=str(payload.get("id") or ""),
            status=str(payload.get("status") or ""),
            output=[str(item) for item in output if item],
            error=str(payload["error"]) if payload.get("error") else None,
        )


class PredictionProvider(ABC):
    """Abstract image generation provider"""

    @abstractmethod
    def create(
        self,
        version: str,
        input: Dict[str, Any],
        webhook: Optional[str] = None,
        webhook_events_filter: Optional[List[str]] = None,
    ) -> ProviderPrediction:
        """
        Submit a generation request.

        Raises:
            ProviderError: if the provider rejects the request or is unreachable
        """
        pass

    @abstractmethod
    def get(self, external_id: str) -> ProviderPrediction:
        """
        Fetch the current state of a prediction.

        Raises:
            ProviderError: if the provider cannot be queried
        """
        pass


class ReplicateProvider(PredictionProvider):
    """Replicate HTTP API client"""

    def __init__(self, api_token: str, base_url: str = "https://api.replicate.com/v1", timeout: int = 30):
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        })

    def is_configured(self) -> bool:
        return bool(self.api_token)

    def _route_for(self, version: str) -> tuple:
        """Resolve a model reference to (path, body fields).

        `owner/name` runs the model's latest version; `owner/name:hash`
        and bare hashes pin a version.
        """
        if ":" in version:
            return "/predictions", {"version": version.split(":", 1)[1]}
        if "/" in version:
            owner, name = version.split("/", 1)
            return f"/models/{owner}/{name}/predictions", {}
        return "/predictions", {"version": version}

    def _request(self, method: str, path: str, **kwargs) -> ProviderPrediction:
        if not self.is_configured():
            raise ProviderError("Replicate API token not configured. Set REPLICATE_API_TOKEN env var.")

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("replicate_request_error", method=method, path=path, error=e)
            raise ProviderError(f"Replicate request failed: {e}") from e

        if response.status_code >= 400:
            detail = response.text[:500]
            logger.warning(
                "replicate_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                detail=detail,
            )
            raise ProviderError(
                f"Replicate returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError("Replicate returned a non-JSON response") from e

        try:
            return ProviderPrediction.from_payload(payload)
        except ValueError as e:
            logger.warning("replicate_response_malformed", method=method, path=path, error=str(e))
            raise ProviderError(f"Replicate returned a malformed prediction: {e}") from e

    def create(self, version, input, webhook=None, webhook_events_filter=None) -> ProviderPrediction:
        path, body = self._route_for(version)
        body["input"] = input
        if webhook:
            body["webhook"] = webhook
            body["webhook_events_filter"] = webhook_events_filter or ["completed"]

        prediction = self._request("POST", path, json=body)
        if not prediction.id:
            raise ProviderError("Replicate response did not include a prediction id")

        logger.info("replicate_prediction_created", external_id=prediction.id, version=version)
        return prediction

    def get(self, external_id: str) -> ProviderPrediction:
        return self._request("GET", f"/predictions/{external_id}")
