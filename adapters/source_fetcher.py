"""
Source payload fetcher.

Retrieves plant and line-geometry payloads from HTTP(S) URLs or local
files, either fully buffered or as a chunk stream for the incremental
JSON parser. Failures surface once as SourceUnavailableError; there is
no retry loop, callers fall back to other sources or the cache.
"""

import json
import logging
from pathlib import Path
from typing import Iterator, Optional

import requests

from app.config import settings

from .base import SourceUnavailableError

logger = logging.getLogger(__name__)


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


class SourceFetcher:
    """Fetch source payloads over HTTP or from disk."""

    def __init__(
        self,
        user_agent: str = settings.HTTP_USER_AGENT,
        timeout: int = settings.HTTP_TIMEOUT,
        chunk_size: int = settings.STREAM_CHUNK_SIZE,
        data_dir: Optional[Path] = None,
    ):
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.data_dir = data_dir if data_dir is not None else settings.DATA_DIR

    def resolve_path(self, location: str) -> Path:
        path = Path(location)
        if not path.is_absolute():
            path = self.data_dir / path
        return path

    def fetch_text(self, location: str, params: Optional[dict] = None) -> str:
        """Return the whole payload as text."""
        if _is_url(location):
            try:
                resp = self.session.get(location, params=params, timeout=self.timeout)
                resp.raise_for_status()
            except requests.exceptions.RequestException as e:
                raise SourceUnavailableError(f"Failed to fetch {location}: {e}") from e
            return resp.text

        path = self.resolve_path(location)
        try:
            return path.read_text(encoding="utf-8-sig")
        except OSError as e:
            raise SourceUnavailableError(f"Failed to read {path}: {e}") from e

    def fetch_json(self, location: str, params: Optional[dict] = None):
        """Return the payload decoded as JSON."""
        text = self.fetch_text(location, params=params)
        try:
            return json.loads(text)
        except ValueError as e:
            raise SourceUnavailableError(f"Invalid JSON from {location}: {e}") from e

    def iter_chunks(self, location: str, params: Optional[dict] = None) -> Iterator[bytes]:
        """
        Open the payload and return an iterator of byte chunks.

        Opening failures raise SourceUnavailableError immediately; errors
        while reading surface from the iterator itself and are reported
        by the streaming parser as stream-read errors.
        """
        if _is_url(location):
            try:
                resp = self.session.get(
                    location, params=params, timeout=self.timeout, stream=True,
                )
                resp.raise_for_status()
            except requests.exceptions.RequestException as e:
                raise SourceUnavailableError(f"Failed to open {location}: {e}") from e
            logger.info(f"Streaming {location}")
            return resp.iter_content(chunk_size=self.chunk_size)

        path = self.resolve_path(location)
        try:
            handle = open(path, "rb")
        except OSError as e:
            raise SourceUnavailableError(f"Failed to open {path}: {e}") from e
        logger.info(f"Streaming {path}")
        return self._read_file(handle)

    def _read_file(self, handle) -> Iterator[bytes]:
        with handle:
            while True:
                chunk = handle.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
