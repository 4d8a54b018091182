from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol

import requests
from pydantic import ValidationError

from ..domain.models import CatalogDocument
from ..errors import CatalogLoadError

logger = logging.getLogger("addon_manager.registry")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class RemoteAddon(Protocol):
    name: str

    async def get_latest_change(self) -> int:
        """Unix milliseconds of the newest change published for this addon."""
        ...


@dataclass
class CatalogRemoteAddon:
    """Remote addon descriptor backed by a catalog entry."""

    name: str
    latest_change: int

    async def get_latest_change(self) -> int:
        return self.latest_change


class RemoteAddonRegistry:
    """
    Name-keyed snapshot of the remote catalog.

    Local addons consult it for update checks. How the catalog gets refreshed
    is up to the caller: `replace()`, `load_catalog()` and `fetch_catalog()`
    each swap the whole snapshot at once.
    """

    def __init__(self, addons: Optional[Iterable[RemoteAddon]] = None):
        self._addons: Dict[str, RemoteAddon] = {}
        self.last_loaded_at: Optional[str] = None
        self.source_error: Optional[str] = None
        if addons is not None:
            self.replace(addons)

    def get(self, name: str) -> Optional[RemoteAddon]:
        return self._addons.get(name)

    def snapshot(self) -> Dict[str, RemoteAddon]:
        return dict(self._addons)

    def replace(self, addons: Iterable[RemoteAddon]) -> None:
        by_name: Dict[str, RemoteAddon] = {}
        for addon in addons:
            if addon.name in by_name:
                raise CatalogLoadError(f"Duplicate addon name in catalog: {addon.name}")
            by_name[addon.name] = addon
        self._addons = by_name
        self.last_loaded_at = _utcnow_iso()
        self.source_error = None
        logger.info("Remote registry now holds %d addon(s)", len(by_name))

    def _load_document(self, raw: object, origin: str) -> None:
        try:
            doc = CatalogDocument.model_validate(raw)
        except ValidationError as e:
            raise CatalogLoadError(f"Invalid catalog from {origin}: {e}")

        self.replace(
            CatalogRemoteAddon(name=entry.name, latest_change=entry.latestChange)
            for entry in doc.addons
        )

    def load_catalog(self, path: Path) -> None:
        logger.info("Loading remote catalog from %s", path)
        if not path.exists():
            logger.error(f"Catalog path does not exist: {path}")
            raise FileNotFoundError(f"Catalog path does not exist: {path}")

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise CatalogLoadError(f"Invalid JSON in {path}: {e}")
        self._load_document(raw, str(path))

    def fetch_catalog(self, url: str, timeout: float = 20.0) -> None:
        logger.info("Fetching remote catalog from %s", url)
        resp = requests.get(url, timeout=timeout)
        if resp.status_code != 200:
            raise CatalogLoadError(f"Catalog fetch failed ({resp.status_code}): {resp.text[:200]}")

        try:
            raw = resp.json()
        except ValueError as e:
            raise CatalogLoadError(f"Catalog response from {url} is not JSON: {e}")
        self._load_document(raw, url)

    def startup_load(self, path: Optional[Path] = None, url: Optional[str] = None, timeout: float = 20.0) -> None:
        """
        Best-effort initial load. A failure leaves the registry empty and is
        recorded in `source_error`; update checks then report "unknown".
        """
        try:
            if url:
                self.fetch_catalog(url, timeout=timeout)
            elif path is not None:
                self.load_catalog(path)
            else:
                logger.info("No remote catalog configured; update checks will report unknown")
        except (CatalogLoadError, OSError, requests.RequestException) as e:
            logger.warning("Failed to load remote catalog: %s", e)
            self._addons = {}
            self.source_error = str(e)
            self.last_loaded_at = _utcnow_iso()
