"""Object storage backends for feedback attachments."""

from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote


class ObjectStorage(ABC):
    """Abstract interface for the store that holds attachment bytes."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the name of this backend (e.g., 'local')."""

    @abstractmethod
    def upload_url(self, path: str, content_type: str) -> str:
        """
        URL the client sends the file to.

        Args:
            path: Storage path of the object
            content_type: MIME type the client declared

        Returns:
            Upload URL for the object
        """

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether an object has been written at the path."""


class LocalObjectStorage(ObjectStorage):
    """Objects stored as files under a local directory."""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    @property
    def backend_name(self) -> str:
        return "local"

    def upload_url(self, path: str, content_type: str) -> str:
        return f"{self.base_url}/{quote(path)}"

    def exists(self, path: str) -> bool:
        return (self.root / path).is_file()
