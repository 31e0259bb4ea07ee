import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import requests

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """The dataset or scope document could not be fetched or parsed."""


class JsonSource:
    """
    A JSON document addressed by an http(s) URL or a local path.
    Relative paths resolve against the project root.
    """

    def __init__(self, location: str, timeout: float = 15):
        self.location = location
        self.timeout = timeout

    def _is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))

    def _path(self) -> Path:
        path = Path(self.location)
        if not path.is_absolute():
            path = Path(__file__).resolve().parent.parent.parent / path
        return path

    def fetch(self) -> Any:
        try:
            if self._is_remote():
                resp = requests.get(self.location, timeout=self.timeout)
                resp.raise_for_status()
                return resp.json()

            with open(self._path(), mode='r', encoding='utf-8') as f:
                return json.load(f)
        except (requests.RequestException, OSError, ValueError) as e:
            raise SourceError(f"{self.location}: {e}") from e

    async def fetch_async(self) -> Any:
        return await asyncio.to_thread(self.fetch)


def as_records(payload: Any) -> list[dict]:
    """Keeps the object rows of a dataset payload, in order."""
    if not isinstance(payload, list):
        raise SourceError(f"Dataset must be a JSON array, got {type(payload).__name__}")

    records = [row for row in payload if isinstance(row, dict)]
    skipped = len(payload) - len(records)
    if skipped:
        logger.warning(f"[Dataset] Skipped {skipped} non-object rows")
    return records
