"""Tests for RemoteAddonRegistry: snapshot replacement and catalog loading."""

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from backend.app.addons.errors import CatalogLoadError
from backend.app.addons.services.registry import CatalogRemoteAddon, RemoteAddonRegistry


def _catalog(*entries):
    return {"generated_at": "2026-01-01T00:00:00Z", "addons": list(entries)}


class TestRegistry:
    def test_lookup_by_name(self):
        registry = RemoteAddonRegistry([CatalogRemoteAddon("foo", 10)])
        remote = registry.get("foo")
        assert remote is not None
        assert asyncio.run(remote.get_latest_change()) == 10
        assert registry.get("bar") is None
        assert list(registry.snapshot()) == ["foo"]

    def test_replace_swaps_snapshot(self):
        registry = RemoteAddonRegistry([CatalogRemoteAddon("foo", 10)])
        registry.replace([CatalogRemoteAddon("bar", 1)])
        assert list(registry.snapshot()) == ["bar"]

    def test_duplicate_names_rejected(self):
        with pytest.raises(CatalogLoadError):
            RemoteAddonRegistry([CatalogRemoteAddon("foo", 1), CatalogRemoteAddon("foo", 2)])

    def test_snapshot_is_a_copy(self):
        registry = RemoteAddonRegistry([CatalogRemoteAddon("foo", 10)])
        registry.snapshot().clear()
        assert registry.get("foo") is not None


class TestLoadCatalog:
    def test_load_catalog_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(_catalog({"name": "foo", "latestChange": 2000, "extra": True})))
        registry = RemoteAddonRegistry()
        registry.load_catalog(path)
        assert asyncio.run(registry.get("foo").get_latest_change()) == 2000
        assert registry.last_loaded_at is not None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RemoteAddonRegistry().load_catalog(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("not json")
        with pytest.raises(CatalogLoadError):
            RemoteAddonRegistry().load_catalog(path)

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(_catalog({"name": "foo"})))
        with pytest.raises(CatalogLoadError):
            RemoteAddonRegistry().load_catalog(path)


class TestFetchCatalog:
    def test_fetch(self):
        resp = MagicMock(status_code=200)
        resp.json.return_value = _catalog({"name": "foo", "latestChange": 5})
        with patch("backend.app.addons.services.registry.requests.get", return_value=resp) as get:
            registry = RemoteAddonRegistry()
            registry.fetch_catalog("https://example.invalid/catalog.json", timeout=3)
        get.assert_called_once_with("https://example.invalid/catalog.json", timeout=3)
        assert list(registry.snapshot()) == ["foo"]

    def test_http_error(self):
        resp = MagicMock(status_code=500, text="boom")
        with patch("backend.app.addons.services.registry.requests.get", return_value=resp):
            with pytest.raises(CatalogLoadError):
                RemoteAddonRegistry().fetch_catalog("https://example.invalid/catalog.json")

    def test_startup_load_is_best_effort(self):
        registry = RemoteAddonRegistry([CatalogRemoteAddon("foo", 1)])
        with patch(
            "backend.app.addons.services.registry.requests.get",
            side_effect=requests.ConnectionError("offline"),
        ):
            registry.startup_load(url="https://example.invalid/catalog.json")
        assert registry.snapshot() == {}
        assert "offline" in registry.source_error

    def test_startup_load_without_source(self):
        registry = RemoteAddonRegistry()
        registry.startup_load()
        assert registry.snapshot() == {}
        assert registry.source_error is None
