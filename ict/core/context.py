"""Application context built once at startup and shared by all requests."""

import httpx
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncEngine

from ict.core.settings import DatabaseSettings, IctSettings
from ict.crypto.jwt_manager import JWTManager
from ict.crypto.keys import load_private_key
from ict.db.engine import create_engine, create_session_factory
from ict.pop.issuer import TokenIssuer
from ict.pop.ledger import NonceLedger
from ict.pop.verifier import ProofOfPossessionVerifier
from ict.upstream.introspection import ContextIntrospector
from ict.upstream.userinfo import UserinfoClient


class AppContext(BaseModel):
    """Read-only collaborators plus the one shared mutable resource, the ledger."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: IctSettings
    engine: AsyncEngine
    http: httpx.AsyncClient
    jwt_mgr: JWTManager
    ledger: NonceLedger
    verifier: ProofOfPossessionVerifier
    issuer: TokenIssuer
    userinfo: UserinfoClient
    introspector: ContextIntrospector | None = None

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.engine.dispose()


def build_context(
    settings: IctSettings,
    db_settings: DatabaseSettings,
    http: httpx.AsyncClient | None = None,
) -> AppContext:
    """Wire every component from settings. Raises ``ConfigurationError``."""
    private_key = load_private_key(
        settings.key_file, settings.alg, settings.key_password
    )
    jwt_mgr = JWTManager(
        private_key=private_key,
        algorithm=settings.alg,
        kid=settings.kid,
        issuer=settings.issuer,
    )

    engine = create_engine(db_settings)
    ledger = NonceLedger(create_session_factory(engine))
    client = http or httpx.AsyncClient(timeout=settings.upstream_timeout)

    introspector = None
    if settings.token_introspection_endpoint:
        introspector = ContextIntrospector(
            client,
            endpoint=settings.token_introspection_endpoint,
            credentials=settings.introspection_credentials,
            prefix=settings.context_prefix,
            host=settings.token_introspection_host,
        )

    return AppContext(
        settings=settings,
        engine=engine,
        http=client,
        jwt_mgr=jwt_mgr,
        ledger=ledger,
        verifier=ProofOfPossessionVerifier(
            issuer=settings.issuer, ledger=ledger, leeway=settings.leeway
        ),
        issuer=TokenIssuer(
            jwt_mgr,
            default_lifetime=settings.default_token_period,
            max_lifetime=settings.max_token_period,
        ),
        userinfo=UserinfoClient(
            client, settings.userinfo_endpoint, host=settings.issuer_host
        ),
        introspector=introspector,
    )
