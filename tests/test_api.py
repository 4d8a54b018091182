"""Tests for the HTTP API (FastAPI TestClient)."""

import json

import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app
from conftest import make_addon, read_library, write_library


@pytest.fixture
def catalog(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"addons": [{"name": "foo", "latestChange": 2000}]}))
    return path


@pytest.fixture
def client(settings, install_root, catalog):
    make_addon(install_root, "foo", display_name="Foo", version="1000", plugin=True)
    make_addon(install_root, "bar", display_name="Bar", version="1000")
    settings.catalog_path = catalog
    with TestClient(create_app(settings)) as c:
        yield c


class TestApi:
    def test_health(self, client):
        assert client.get("/api/health").json()["status"] == "ok"

    def test_workspace_state(self, client):
        assert client.get("/api/addons/workspace").json() == {"workspaceOpen": True}

    def test_list_local(self, client):
        resp = client.get("/api/addons/local")
        assert resp.status_code == 200
        by_name = {a["name"]: a for a in resp.json()}
        assert set(by_name) == {"foo", "bar"}
        assert by_name["foo"]["displayName"] == "Foo"
        assert by_name["foo"]["hasPlugin"] is True
        assert by_name["foo"]["hasUpdate"] is True
        assert by_name["bar"]["hasUpdate"] is None

    def test_list_local_queues_messages(self, client):
        client.get("/api/addons/local")
        commands = [m["command"] for m in client.get("/api/addons/messages").json()]
        assert commands.count("addLocalAddon") == 2
        assert client.get("/api/addons/messages").json() == []

    def test_get_one(self, client):
        resp = client.get("/api/addons/local/bar")
        assert resp.status_code == 200
        assert resp.json()["displayName"] == "Bar"

    def test_get_unknown(self, client):
        assert client.get("/api/addons/local/nope").status_code == 404

    def test_get_unreadable_config(self, client, install_root):
        (install_root / "bar" / "config.json").write_text("{")
        assert client.get("/api/addons/local/bar").status_code == 422

    def test_enable_and_disable(self, client, workspace, install_root):
        resp = client.post("/api/addons/local/foo/enable")
        assert resp.json() == {"name": "foo", "enabled": True, "changed": True}
        assert len(read_library(workspace)) == 1

        resp = client.post("/api/addons/local/foo/enable")
        assert resp.json() == {"name": "foo", "enabled": True, "changed": False}

        resp = client.post("/api/addons/local/foo/disable")
        assert resp.json() == {"name": "foo", "enabled": False, "changed": True}
        assert read_library(workspace) == []

    def test_uninstall(self, client, workspace, install_root):
        write_library(workspace, [str(install_root / "bar")])
        resp = client.delete("/api/addons/local/bar")
        assert resp.status_code == 200
        assert resp.json()["uninstalled"] is True
        assert read_library(workspace) == []
        assert client.get("/api/addons/local/bar").status_code == 404

    def test_refresh_picks_up_new_addon(self, client, install_root):
        make_addon(install_root, "baz")
        resp = client.post("/api/addons/local/refresh")
        assert resp.json()["addons"] == ["bar", "baz", "foo"]

    def test_enabled_in_library_order(self, client, workspace, install_root):
        write_library(workspace, [str(install_root / "foo"), "/x/other", str(install_root / "bar")])
        assert client.get("/api/addons/local/enabled").json() == {"addons": ["foo", "bar"]}

    def test_settings_with_comments(self, client, workspace, install_root):
        path = workspace / ".vscode" / "settings.json"
        path.parent.mkdir(parents=True)
        path.write_text('{\n    // editor comment\n    "Lua.workspace.library": [],\n}\n')

        assert client.get("/api/addons/local").status_code == 200
        resp = client.post("/api/addons/local/foo/enable")
        assert resp.json() == {"name": "foo", "enabled": True, "changed": True}
        assert len(read_library(workspace)) == 1

    def test_unreadable_settings_is_reported(self, client, workspace):
        path = workspace / ".vscode" / "settings.json"
        path.parent.mkdir(parents=True)
        path.write_text("{broken")

        resp = client.get("/api/addons/local")
        assert resp.status_code == 500
        assert "workspace settings" in resp.json()["detail"]
        assert client.post("/api/addons/local/foo/enable").status_code == 500

    def test_updates(self, client):
        assert client.get("/api/addons/updates").json() == {"updates": ["foo"]}


class TestApiWithoutWorkspace:
    @pytest.fixture
    def client(self, settings, install_root):
        make_addon(install_root, "foo")
        settings.workspace = None
        with TestClient(create_app(settings)) as c:
            yield c

    def test_workspace_closed(self, client):
        assert client.get("/api/addons/workspace").json() == {"workspaceOpen": False}

    def test_list_conflict(self, client):
        resp = client.get("/api/addons/local")
        assert resp.status_code == 409
        assert resp.json()["detail"]["actions"] == ["Open Folder"]

    def test_enable_offers_recovery(self, client):
        resp = client.post("/api/addons/local/foo/enable")
        assert resp.status_code == 409
        messages = client.get("/api/addons/messages").json()
        assert any(m["command"] == "showMessage" for m in messages)
