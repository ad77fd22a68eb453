"""
Generated image storage.

Provider output URLs expire, so finished images are copied to storage we
control before their URL is recorded on the prediction.
"""

import random
import string
import time
from abc import ABC, abstractmethod
from pathlib import Path

import requests

from ..logging_config import get_logger
from .exceptions import ArtifactUploadError

logger = get_logger("artifacts")


def artifact_filename(extension: str = "png") -> str:
    """`<epoch-ms>-<random>.<ext>`, unique enough for one bucket."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=13))
    return f"{int(time.time() * 1000)}-{suffix}.{extension}"


class ArtifactStore(ABC):
    """Copies a remote file into persistent storage"""

    @abstractmethod
    def upload(self, source_url: str, filename: str) -> str:
        """
        Persist the file at `source_url` and return its public URL.

        Raises:
            ArtifactUploadError: if the file cannot be fetched or stored
        """
        pass


class LocalArtifactStore(ArtifactStore):
    """Stores artifacts on local disk, served by the API under the media prefix"""

    CHUNK_SIZE = 64 * 1024

    def __init__(self, media_dir: str, public_base_url: str, timeout: int = 60):
        self.media_dir = Path(media_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.timeout = timeout

    def upload(self, source_url: str, filename: str) -> str:
        self.media_dir.mkdir(parents=True, exist_ok=True)
        target = self.media_dir / filename

        try:
            with requests.get(source_url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(target, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                        f.write(chunk)
        except (requests.RequestException, OSError) as e:
            target.unlink(missing_ok=True)
            logger.error("artifact_upload_failed", source_url=source_url, error=e)
            raise ArtifactUploadError(f"Could not store {source_url}: {e}") from e

        url = f"{self.public_base_url}/{filename}"
        logger.info("artifact_stored", source_url=source_url, url=url, size=target.stat().st_size)
        return url
