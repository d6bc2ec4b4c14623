"""Pytest configuration and fixtures."""

import copy
import os
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEV_PORTAL_KEY"] = "test-portal-key"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["DEBUG"] = "false"

from fusiondonate.config import Settings
from fusiondonate.fusion.models import (
    OrderStatusInfo,
    PreparedCrossChainOrder,
    Quote,
    ReadyFill,
    ReadyToAcceptSecretFills,
)
from fusiondonate.signing.base import WalletSigner
from fusiondonate.store.database import session_scope
from fusiondonate.store.models import Base
from fusiondonate.store.repository import OrderRepository

WALLET = "0x" + "ab" * 20
USDC_ARBITRUM = "0xaf88d065e77c8cc2239327c5edb3a432268e5831"
USDC_BASE = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
ORDER_HASH = "0x" + "0f" * 32
ROUTER = "0x111111125421ca6dc452d289314280a0f8842a65"


def make_swap_params(**overrides) -> dict:
    params = {
        "srcChainId": 42161,
        "dstChainId": 8453,
        "srcTokenAddress": USDC_ARBITRUM,
        "dstTokenAddress": USDC_BASE,
        "amount": "100000",
        "walletAddress": WALLET,
    }
    params.update(overrides)
    return params


def make_quote_data(secrets_count: int = 1, recommended: str = "fast") -> dict:
    return {
        "quoteId": "quote-1",
        "srcTokenAmount": "100000",
        "dstTokenAmount": "99500",
        "presets": {
            "fast": {
                "auctionDuration": 180,
                "startAuctionIn": 17,
                "initialRateBump": 84909,
                "auctionStartAmount": "99990",
                "auctionEndAmount": "99500",
                "costInDstToken": "490",
                "allowPartialFills": secrets_count > 1,
                "allowMultipleFills": secrets_count > 1,
                "secretsCount": secrets_count,
            },
            "slow": None,
        },
        "recommendedPreset": recommended,
        "srcSafetyDeposit": "1260000000000",
        "dstSafetyDeposit": "1050000000000",
    }


def make_typed_data() -> dict:
    return {
        "domain": {
            "name": "1inch Aggregation Router",
            "version": "6",
            "chainId": 42161,
            "verifyingContract": ROUTER,
        },
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "Order": [
                {"name": "salt", "type": "uint256"},
                {"name": "maker", "type": "address"},
                {"name": "receiver", "type": "address"},
                {"name": "makerAsset", "type": "address"},
                {"name": "takerAsset", "type": "address"},
                {"name": "makingAmount", "type": "uint256"},
                {"name": "takingAmount", "type": "uint256"},
                {"name": "makerTraits", "type": "uint256"},
            ],
        },
        "primaryType": "Order",
        "message": {
            "salt": 2**200 + 12345,
            "maker": WALLET,
            "receiver": "0x0000000000000000000000000000000000000000",
            "makerAsset": USDC_ARBITRUM,
            "takerAsset": "0xda0000d4000015a526378bb6fafc650cea5966f8",
            "makingAmount": 100000,
            "takingAmount": 99500,
            "makerTraits": 62419173104490761595518734106557662061518414611782227068396304425790442831872,
        },
    }


class FakeFusionClient:
    """In-process settlement provider recording every call.

    Queue failures per method with ``fail``; they are raised in order before
    the method falls back to its canned answer.
    """

    def __init__(
        self,
        quote_data: Optional[dict] = None,
        typed_data: Optional[dict] = None,
        order_hash: str = ORDER_HASH,
    ):
        self.quote_data = quote_data or make_quote_data()
        self.typed_data = typed_data if typed_data is not None else make_typed_data()
        self.order_hash = order_hash
        self.statuses: dict[str, str] = {}
        self.ready_fills: dict[str, list[int]] = {}
        self.failures: dict[str, list[Exception]] = {}
        self.calls: list[str] = []
        self.built_orders = []
        self.submissions = []
        self.revealed: list[tuple[str, str]] = []

    def fail(self, method: str, *errors: Exception) -> None:
        self.failures.setdefault(method, []).extend(errors)

    def _record(self, method: str) -> None:
        self.calls.append(method)
        queued = self.failures.get(method)
        if queued:
            raise queued.pop(0)

    async def get_quote(self, params):
        self._record("get_quote")
        return Quote.model_validate(self.quote_data)

    async def create_order(self, params, quote, order_params):
        self._record("create_order")
        self.built_orders.append(order_params)
        return PreparedCrossChainOrder(
            order_hash=self.order_hash,
            quote_id=quote.quote_id,
            extension="0xdeadbeef",
            typed_data=copy.deepcopy(self.typed_data),
        )

    async def submit_order(self, submission):
        self._record("submit_order")
        self.submissions.append(submission)

    async def get_order_status(self, order_hash):
        self._record("get_order_status")
        return OrderStatusInfo(order_hash=order_hash, status=self.statuses.get(order_hash, "pending"))

    async def get_ready_to_accept_secret_fills(self, order_hash):
        self._record("get_ready_to_accept_secret_fills")
        return ReadyToAcceptSecretFills(
            fills=[ReadyFill(idx=i) for i in self.ready_fills.get(order_hash, [])]
        )

    async def submit_secret(self, order_hash, secret):
        self._record("submit_secret")
        self.revealed.append((order_hash, secret))


class FakeSigner(WalletSigner):
    """Signer returning a fixed signature and remembering what it signed."""

    def __init__(self, address: str = WALLET, signature: str = "0x" + "11" * 65):
        self._address = address
        self.signature = signature
        self.signed: list[dict] = []

    @property
    def address(self) -> str:
        return self._address

    async def sign_typed_data(self, payload):
        self.signed.append(payload)
        return self.signature


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and .env file."""
    return Settings(
        _env_file=None,
        dev_portal_key="test-portal-key",
        cron_secret="test-cron-secret",
        database_url="sqlite+aiosqlite:///:memory:",
        worker_cleanup_probability=0.0,
    )


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing.

    StaticPool keeps one connection so every session sees the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    """``get_db``-style unit of work bound to the test database."""
    return session_scope(session_factory)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def order_repo(db_session: AsyncSession) -> OrderRepository:
    """Create order repository for testing."""
    return OrderRepository(db_session)


@pytest.fixture
def fake_provider() -> FakeFusionClient:
    return FakeFusionClient()


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def swap_params() -> dict:
    return make_swap_params()


@pytest.fixture
def app(fake_provider, db, settings):
    """Application wired to the fake provider and the test database."""
    from fusiondonate.api.app import create_app
    from fusiondonate.api.routes.health import get_store
    from fusiondonate.services.order_completion import OrderCompletionWorker
    from fusiondonate.web.controllers.fusion_orders import get_order_service
    from fusiondonate.web.controllers.order_processing import get_completion_worker
    from fusiondonate.web.services.order_service import OrderPreparationService

    app = create_app()
    app.dependency_overrides[get_store] = lambda: db
    app.dependency_overrides[get_order_service] = lambda: OrderPreparationService(
        provider=fake_provider, session_factory=db, settings=settings
    )
    app.dependency_overrides[get_completion_worker] = lambda: OrderCompletionWorker(
        provider=fake_provider, session_factory=db, settings=settings, random_source=lambda: 1.0
    )
    return app


@pytest_asyncio.fixture
async def client(app):
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
