from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from sq_portal.secrets import get_secret

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_MAX_TORRENT_BYTES = 10 * 1024 * 1024
DEFAULT_API_TIMEOUT_SECONDS = 30.0
DEFAULT_TOKEN_COOKIE = "token"
DEFAULT_SIGN_IN_PATH = "/login"

CategoryCatalog = Mapping[str, tuple[str, ...]]


@dataclass(frozen=True)
class PortalConfig:
    """Process-wide settings, fixed at startup and passed to every component."""

    base_url: str
    api_url: str
    jwt_secret: str
    categories: CategoryCatalog = field(default_factory=lambda: MappingProxyType({}))
    allow_anonymous_upload: bool = False
    max_torrent_bytes: int = DEFAULT_MAX_TORRENT_BYTES
    api_timeout_seconds: float = DEFAULT_API_TIMEOUT_SECONDS
    token_cookie: str = DEFAULT_TOKEN_COOKIE
    sign_in_path: str = DEFAULT_SIGN_IN_PATH

    def announce_url(self, subject_id: str) -> str:
        return f"{self.base_url}/sq/{subject_id}/announce"


def _is_truthy(value: str | None) -> bool:
    return str(value or "").strip().lower() in TRUE_VALUES


def _strip_trailing_slash(url: str) -> str:
    return (url or "").strip().rstrip("/")


def _parse_positive_int(raw_value: str | None, default: int, *, name: str) -> int:
    if raw_value is None or not raw_value.strip():
        return default
    try:
        parsed = int(raw_value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s=%r; using default %s.", name, raw_value, default)
        return default
    if parsed <= 0:
        logger.warning("Non-positive %s=%r; using default %s.", name, raw_value, default)
        return default
    return parsed


def _parse_positive_float(raw_value: str | None, default: float, *, name: str) -> float:
    if raw_value is None or not raw_value.strip():
        return default
    try:
        parsed = float(raw_value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s=%r; using default %s.", name, raw_value, default)
        return default
    return parsed if parsed > 0 else default


def parse_category_catalog(raw: Any) -> CategoryCatalog:
    """
    Normalize a decoded JSON object of ``{category: [source, ...]}`` into a read-only
    ordered catalog. Category order follows the JSON object order.
    """
    if raw is None:
        return MappingProxyType({})
    if not isinstance(raw, Mapping):
        raise ValueError("Torrent categories must be a JSON object of category -> sources.")

    catalog: dict[str, tuple[str, ...]] = {}
    for category, sources in raw.items():
        label = str(category).strip()
        if not label:
            raise ValueError("Torrent categories cannot contain an empty category name.")
        if sources is None:
            sources = []
        if not isinstance(sources, (list, tuple)):
            raise ValueError(f"Sources for category '{label}' must be a list.")
        catalog[label] = tuple(str(source).strip() for source in sources if str(source).strip())
    return MappingProxyType(catalog)


def _load_category_catalog() -> CategoryCatalog:
    inline = os.getenv("SQ_TORRENT_CATEGORIES")
    file_path = os.getenv("SQ_TORRENT_CATEGORIES_FILE")
    if inline and inline.strip():
        source_text = inline
        source_name = "SQ_TORRENT_CATEGORIES"
    elif file_path:
        source_text = Path(file_path).read_text(encoding="utf-8")
        source_name = file_path
    else:
        return MappingProxyType({})

    try:
        decoded = json.loads(source_text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Torrent categories in {source_name} are not valid JSON: {exc}") from exc
    return parse_category_catalog(decoded)


def load_portal_config(jwt_secret: Optional[str] = None) -> PortalConfig:
    config = PortalConfig(
        base_url=_strip_trailing_slash(os.getenv("SQ_BASE_URL", DEFAULT_BASE_URL)),
        api_url=_strip_trailing_slash(os.getenv("SQ_API_URL", DEFAULT_API_URL)),
        jwt_secret=jwt_secret if jwt_secret is not None else get_secret("SQ_JWT_SECRET"),
        categories=_load_category_catalog(),
        allow_anonymous_upload=_is_truthy(os.getenv("SQ_ALLOW_ANONYMOUS_UPLOAD")),
        max_torrent_bytes=_parse_positive_int(
            os.getenv("SQ_MAX_TORRENT_BYTES"),
            DEFAULT_MAX_TORRENT_BYTES,
            name="SQ_MAX_TORRENT_BYTES",
        ),
        api_timeout_seconds=_parse_positive_float(
            os.getenv("SQ_API_TIMEOUT_SECONDS"),
            DEFAULT_API_TIMEOUT_SECONDS,
            name="SQ_API_TIMEOUT_SECONDS",
        ),
        token_cookie=(os.getenv("SQ_TOKEN_COOKIE") or DEFAULT_TOKEN_COOKIE).strip(),
        sign_in_path=(os.getenv("SQ_SIGN_IN_PATH") or DEFAULT_SIGN_IN_PATH).strip(),
    )
    logger.info(
        "Loaded portal config api_url=%s categories=%s anonymous_upload=%s max_torrent_bytes=%s",
        config.api_url,
        len(config.categories),
        config.allow_anonymous_upload,
        config.max_torrent_bytes,
    )
    return config
