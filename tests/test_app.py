import importlib

from fastapi.testclient import TestClient
import pytest

from conftest import JWT_SECRET
from sq_portal.api_client import TrackerApiClient


@pytest.fixture(scope="module")
def portal():
    with pytest.MonkeyPatch.context() as mp:
        mp.setenv("SQ_JWT_SECRET", JWT_SECRET)
        mp.delenv("SQ_TORRENT_CATEGORIES", raising=False)
        mp.delenv("SQ_TORRENT_CATEGORIES_FILE", raising=False)
        module = importlib.import_module("app")
    return module


def test_legacy_edit_route_redirects_to_edit_page(portal):
    client = TestClient(portal.app)

    response = client.get("/announcements/site-news/edit", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/announcement-edit/?slug=site-news"


def test_root_redirects_to_upload(portal):
    client = TestClient(portal.app)

    response = client.get("/", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/upload/"


def test_upload_page_requires_sign_in(portal):
    client = TestClient(portal.app)

    response = client.get("/upload/", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/login?redirect_to=/upload/"


async def test_lifespan_closes_api_client(portal, config, monkeypatch):
    api = TrackerApiClient(config)
    monkeypatch.setattr(portal, "api_client", api)

    async with portal.lifespan(portal.app):
        assert not api._client.is_closed

    assert api._client.is_closed


def test_launcher_arguments(monkeypatch):
    launcher = importlib.import_module("0_script_dir_in_sys_path")
    monkeypatch.setenv("PORT", "9000")

    args = launcher._parse_args(["--env", "prod"])

    assert args.env == "prod"
    assert args.port == 9000
    assert args.host == "0.0.0.0"
    assert args.log_level == "info"


def test_setup_secrets_writes_env_file_once(monkeypatch, tmp_path):
    from sq_portal import secrets

    monkeypatch.setattr(secrets, "_SECRETS_DIR", tmp_path / "secrets")
    monkeypatch.setenv("ENV_FILE", "SQ_JWT_SECRET=abc\n")

    written = secrets.setup_secrets("test")
    monkeypatch.setenv("ENV_FILE", "SQ_JWT_SECRET=changed\n")
    secrets.setup_secrets("test")

    assert written == {"ENV_FILE": tmp_path / "secrets" / "env.test"}
    assert written["ENV_FILE"].read_text(encoding="utf-8") == "SQ_JWT_SECRET=abc\n"
