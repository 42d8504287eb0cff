"""Pytest configuration and fixtures for the password reset service.

The environment is populated before app.main is imported, since importing it
builds the module-level app from settings. Tests that need the HTTP API build
their own app with create_app() and in-memory collaborators (FakeDirectory,
RecordingSender) so no directory or SMTP server is required.
"""

import os

os.environ.setdefault("LDAP_URL", "ldaps://directory.test")
os.environ.setdefault("LDAP_DOMAIN", "example.com")
os.environ.setdefault("LDAP_SERVICE_USERNAME", "svc-reset")
os.environ.setdefault("LDAP_SERVICE_PASSWORD", "service-secret")
os.environ.setdefault("TOKEN_SENDER", "console")
os.environ.setdefault("SESSION_COOKIE_SECURE", "false")

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.application.services.reset_workflow import ResetWorkflow
from app.application.services.token_issuer import TokenIssuer
from app.core.config import Settings
from app.domain.entities import DirectoryIdentity, ResetToken
from app.domain.enums import PasswordChangeOutcome
from app.domain.exceptions import DirectoryUnavailableException, TokenDeliveryException
from app.main import create_app

ALICE = DirectoryIdentity(
    distinguished_name="CN=Alice Example,OU=Staff,DC=example,DC=com",
    principal_name="alice@example.com",
    display_name="Alice Example",
    mail="alice@example.com",
    telephone_number="+1 555 0100",
)
BOB = DirectoryIdentity(
    distinguished_name="CN=Bob Example,OU=Staff,DC=example,DC=com",
    principal_name="bob@example.com",
    display_name="Bob Example",
)


class FakeClock:
    """Clock whose time only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeDirectory:
    """In-memory directory. Calling it returns itself as the client context manager."""

    def __init__(self, *identities: DirectoryIdentity) -> None:
        self.users = {i.principal_name.split("@")[0]: i for i in identities}
        self.passwords: dict[str, str] = {}
        self.rejected_passwords: set[str] = set()
        self.available = True
        self.password_change_available = True
        self.connections = 0
        self.lookups: list[str] = []
        self.changes: list[tuple[str, str]] = []

    def __call__(self) -> "FakeDirectory":
        return self

    def __enter__(self) -> "FakeDirectory":
        if not self.available:
            raise DirectoryUnavailableException("bind")
        self.connections += 1
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    def lookup(self, username: str) -> DirectoryIdentity | None:
        self.lookups.append(username)
        return self.users.get(username)

    def change_password(
        self, identity: DirectoryIdentity, new_password: str
    ) -> PasswordChangeOutcome:
        self.changes.append((identity.distinguished_name, new_password))
        if not self.password_change_available:
            return PasswordChangeOutcome.UNAVAILABLE
        if new_password in self.rejected_passwords:
            return PasswordChangeOutcome.POLICY_VIOLATION
        self.passwords[identity.distinguished_name] = new_password
        return PasswordChangeOutcome.SUCCESS


class RecordingSender:
    """Token sender that keeps delivered tokens in memory (e-mail eligibility rules)."""

    channel = "recording"

    def __init__(self) -> None:
        self.delivered: list[tuple[DirectoryIdentity, ResetToken]] = []
        self.fail = False

    def is_eligible(self, identity: DirectoryIdentity) -> str | None:
        return None if identity.mail else "Your user has no e-mail address."

    def deliver(self, identity: DirectoryIdentity, token: ResetToken) -> None:
        if self.fail:
            raise TokenDeliveryException(self.channel)
        self.delivered.append((identity, token))

    def success_message(self) -> str:
        return "Check your e-mail."

    @property
    def last_token(self) -> str:
        return self.delivered[-1][1].value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(ALICE, BOB)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def issuer(clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(timedelta(minutes=15), clock=clock)


@pytest.fixture
def workflow(
    directory: FakeDirectory, issuer: TokenIssuer, sender: RecordingSender
) -> ResetWorkflow:
    return ResetWorkflow(directory, issuer, sender)


@pytest.fixture
def settings() -> Settings:
    """Explicit settings for app tests (no .env file)."""
    return Settings(
        _env_file=None,
        ldap_url="ldaps://directory.test",
        ldap_domain="example.com",
        ldap_service_username="svc-reset",
        token_sender="console",
        session_cookie_secure=False,
    )


@pytest.fixture
def app(
    settings: Settings, directory: FakeDirectory, sender: RecordingSender
) -> FastAPI:
    return create_app(settings, directory_factory=directory, token_sender=sender)


@pytest.fixture
async def client(app: FastAPI) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI). Keeps the session cookie."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
