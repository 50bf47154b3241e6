from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import List, Optional

import jwt
import pytest

from sq_portal.access_gate import AccessGate
from sq_portal.config import PortalConfig

JWT_SECRET = "test-secret-with-enough-length-for-hs256"

CATEGORIES = MappingProxyType(
    {
        "Movies": ("BluRay", "Web-DL"),
        "TV Shows": ("HDTV", "Web-DL"),
        "Music & Audio": ("FLAC", "MP3"),
        "Other": (),
    }
)


class RecordingNotifier:
    """Collects notifications instead of showing toasts."""

    def __init__(self) -> None:
        self.successes: List[str] = []
        self.errors: List[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def count(self) -> int:
        return len(self.successes) + len(self.errors)


def issue_token(
    *,
    role: Optional[str] = "user",
    subject: Optional[str] = "user-123",
    secret: str = JWT_SECRET,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    payload = {"exp": datetime.now(timezone.utc) + expires_in}
    if role is not None:
        payload["role"] = role
    if subject is not None:
        payload["id"] = subject
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def config() -> PortalConfig:
    return PortalConfig(
        base_url="https://tracker.example",
        api_url="https://api.tracker.example",
        jwt_secret=JWT_SECRET,
        categories=CATEGORIES,
        allow_anonymous_upload=True,
        max_torrent_bytes=1024,
    )


@pytest.fixture
def gate(config: PortalConfig) -> AccessGate:
    return AccessGate(config)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def user_token() -> str:
    return issue_token(role="user", subject="user-123")


@pytest.fixture
def admin_token() -> str:
    return issue_token(role="admin", subject="admin-1")
