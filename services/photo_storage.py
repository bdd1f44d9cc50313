"""
Object storage for journal photos.

Objects live under "<user_id>/<entry_id>/<file_name>". Only the path is kept
in the database; public URLs are built at read time.
"""

import os
from abc import ABC, abstractmethod
from typing import Iterable


class PhotoStorage(ABC):
    """Minimal object-store surface the journal pipeline needs."""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> None:
        pass

    @abstractmethod
    def remove(self, paths: Iterable[str]) -> None:
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        pass


def _safe_parts(path: str) -> list:
    parts = [p for p in (path or "").split("/") if p]
    if not parts or any(p in (".", "..") or "\\" in p for p in parts):
        raise ValueError(f"invalid storage path: {path!r}")
    return parts


class LocalPhotoStorage(PhotoStorage):
    """Filesystem-backed store; files are served by routes/journal.py."""

    def __init__(self, root_dir: str, public_base_url: str = "/photos"):
        self.root_dir = os.path.abspath(root_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def _full_path(self, path: str) -> str:
        return os.path.join(self.root_dir, *_safe_parts(path))

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        full = self._full_path(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as fh:
            fh.write(data)

    def remove(self, paths: Iterable[str]) -> None:
        for path in paths:
            full = self._full_path(path)
            if os.path.exists(full):
                os.remove(full)

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{'/'.join(_safe_parts(path))}"
