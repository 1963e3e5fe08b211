"""Post-run dataset upload to the warehouse.

Runs once after the crawl and never touches the run statistics: a failed
upload is logged and reported, the crawl result stands.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Union

import requests

logger = logging.getLogger(__name__)


class Uploader(Protocol):
    def upload(self, table_name: str, path: Path) -> None: ...


class HttpUploader:
    """POST the JSONL dataset to ``<endpoint>/<table_name>``."""

    def __init__(self, endpoint: str, token: Optional[str] = None, timeout: int = 120, session: Optional[requests.Session] = None):
        self.endpoint = endpoint.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def upload(self, table_name: str, path: Path) -> None:
        headers = {"Content-Type": "application/x-ndjson"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        with open(path, "rb") as f:
            resp = self.session.post(f"{self.endpoint}/{table_name}", data=f, headers=headers, timeout=self.timeout)
        resp.raise_for_status()


def uploader_from_settings(settings) -> Optional[HttpUploader]:
    endpoint = settings.get("UPLOAD_URL")
    if not endpoint:
        return None
    return HttpUploader(endpoint, token=settings.get("UPLOAD_TOKEN") or None, timeout=int(settings.get("UPLOAD_TIMEOUT") or 120))


def upload_dataset(table_name: str, path: Union[str, Path], uploader: Optional[Uploader], development: bool = False) -> bool:
    """Upload the run's dataset; returns True when the warehouse accepted it."""
    if development:
        logger.info(f"[UPLOAD] skipped table={table_name} (development run)")
        return False
    if uploader is None:
        logger.warning(f"[UPLOAD] skipped table={table_name}: no UPLOAD_URL configured")
        return False
    path = Path(path)
    if not path.exists():
        logger.warning(f"[UPLOAD] skipped table={table_name}: dataset {path} does not exist")
        return False
    try:
        uploader.upload(table_name, path)
    except (requests.RequestException, OSError) as e:
        logger.error(f"[UPLOAD] failed table={table_name} path={path} error={e!r}")
        return False
    logger.info(f"[UPLOAD] update to warehouse finished table={table_name}")
    return True
