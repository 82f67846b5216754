"""Shared test fixtures for the ICT service."""

import secrets
import time
from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ict.core.app import create_app
from ict.core.context import AppContext, build_context
from ict.core.settings import DatabaseSettings, IctSettings
from ict.crypto.keys import public_key_to_jwk
from ict.db.base import BaseEntity
from ict.db.engine import create_engine, create_schema, create_session_factory
from ict.pop.ledger import NonceLedger

ISSUER = "https://op.example.com"
USERINFO_URL = "https://op.example.com/userinfo"
INTROSPECTION_URL = "https://op.example.com/introspect"
USER_ID = "user-1"
KID = "ict-key-1"

ProofFactory = Callable[..., str]


class FakeProvider:
    """Stand-in for the upstream OpenID provider."""

    def __init__(self) -> None:
        self.identity: Any = {"sub": USER_ID, "email": "a@example.com"}
        self.userinfo_status = 200
        self.introspection: Any = {"active": True, "scope": "openid"}
        self.requests: list[httpx.Request] = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == INTROSPECTION_URL:
            return httpx.Response(200, json=self.introspection)
        if self.userinfo_status != 200:
            return httpx.Response(self.userinfo_status, json={"error": "nope"})
        return httpx.Response(200, json=self.identity)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def provider_http(provider: FakeProvider) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(provider.handle))


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def db_settings(tmp_path: Path) -> DatabaseSettings:
    return DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")


@pytest.fixture
async def ledger(db_settings: DatabaseSettings) -> AsyncIterator[NonceLedger]:
    """File-backed ledger so separate sessions see each other's writes."""
    engine = create_engine(db_settings)
    await create_schema(engine)
    yield NonceLedger(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def client_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def make_proof(client_key: ec.EllipticCurvePrivateKey) -> ProofFactory:
    """Build a signed proof-of-possession token embedding its own key."""

    def _make(
        key: Any = None,
        alg: str = "ES256",
        jwk: Any = None,
        embed_jwk: bool = True,
        **claims: Any,
    ) -> str:
        signing_key = key or client_key
        now = int(time.time())
        payload: dict[str, Any] = {
            "sub": USER_ID,
            "aud": ISSUER,
            "iat": now,
            "exp": now + 300,
            "jti": secrets.token_urlsafe(16),
        }
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        headers: dict[str, Any] = {}
        if embed_jwk:
            headers["jwk"] = (
                jwk if jwk is not None else public_key_to_jwk(signing_key.public_key())
            )
        return jwt.encode(payload, signing_key, algorithm=alg, headers=headers)

    return _make


@pytest.fixture
def server_key_file(tmp_path: Path) -> Path:
    key = ec.generate_private_key(ec.SECP256R1())
    path = tmp_path / "signing.pem"
    path.write_bytes(
        key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


@pytest.fixture
def settings(server_key_file: Path) -> IctSettings:
    return IctSettings(
        key_file=str(server_key_file),
        kid=KID,
        alg="ES256",
        userinfo_endpoint=USERINFO_URL,
        issuer=ISSUER,
        nonce_gc_interval=0,
    )


@pytest.fixture
async def context(
    settings: IctSettings,
    db_settings: DatabaseSettings,
    provider_http: httpx.AsyncClient,
) -> AsyncIterator[AppContext]:
    ctx = build_context(settings, db_settings, http=provider_http)
    await create_schema(ctx.engine)
    yield ctx
    await ctx.aclose()


@pytest.fixture
async def client(context: AppContext) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client for the app."""
    app = create_app(context)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
