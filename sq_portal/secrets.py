from __future__ import annotations
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from google.cloud import secretmanager

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SECRETS_DIR = _REPO_ROOT / "secrets"


def env_file_path(env: str) -> Path:
    return _SECRETS_DIR / f"env.{env}"


def setup_secrets(env: str) -> dict[str, Path]:
    """
    Write the dotenv payload delivered in ENV_FILE (Cloud Run secret env var) to
    ``secrets/env.<env>``. An existing file is left alone.
    Returns the env var names mapped to the files backing them.
    """
    value = os.environ.get("ENV_FILE")
    if not value:
        return {}

    target = env_file_path(env)
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists():
        logger.info("Secrets file %s already exists, skipping", target)
    else:
        target.write_text(value, encoding="utf-8")
        logger.info("Wrote secrets for env=%s to %s", env, target)
    return {"ENV_FILE": target}


@lru_cache(maxsize=1)
def _sm_client() -> secretmanager.SecretManagerServiceClient:
    return secretmanager.SecretManagerServiceClient()


@lru_cache(maxsize=64)
def _sm_get(resource: str) -> str:
    resp = _sm_client().access_secret_version(name=resource)
    return resp.payload.data.decode("utf-8")


def _read_secret_file(path_value: str, name: str) -> str:
    try:
        return Path(path_value).read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise RuntimeError(f"Could not read {name}_FILE at {path_value}: {exc}") from exc


def get_secret(name: str, default: Optional[str] = None) -> str:
    """
    Resolution order:
      1) NAME (env/.env)
      2) NAME_FILE (path to a mounted secret file)
      3) NAME_RESOURCE (Secret Manager resource path)
      4) default, else raise RuntimeError
    """
    if (v := os.getenv(name)) is not None:
        return v
    if (f := os.getenv(f"{name}_FILE")):
        return _read_secret_file(f, name)
    if (r := os.getenv(f"{name}_RESOURCE")):
        logger.info("Resolving %s from Secret Manager", name)
        return _sm_get(r).strip()
    if default is not None:
        return default
    raise RuntimeError(f"Missing {name} (or {name}_FILE / {name}_RESOURCE)")
