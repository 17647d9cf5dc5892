from collections.abc import AsyncGenerator, Generator
import os

# Settings are read once at import time, so the test profile goes first
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("PASSWORD_HASH_MEMORY_KIB", "1024")
os.environ.setdefault("PASSWORD_HASH_COST", "1")

from fastapi import FastAPI  # noqa: E402
import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from src.core.redis.dependencies import get_redis_client  # noqa: E402
from src.core.redis.store import KeyValueStore  # noqa: E402
from src.main.config import Config, get_settings  # noqa: E402
from src.main.web import get_application  # noqa: E402
from src.user.auth.platform import Platform, PlatformInfo  # noqa: E402
from src.user.auth.rotation import RefreshTokenRotator  # noqa: E402
from src.user.auth.security import TokenManager  # noqa: E402
from src.user.auth.stores.activity import ActivityLog  # noqa: E402
from src.user.auth.stores.session_registry import SessionRegistry  # noqa: E402
from src.user.schemas import UserProfile  # noqa: E402
from tests.factories.user_factory import DEFAULT_PASSWORD, build_user  # noqa: E402
from tests.fakes.events import RecordingEventPublisher  # noqa: E402
from tests.fakes.redis import InMemoryRedis  # noqa: E402
from tests.fakes.users import InMemoryUserRepository  # noqa: E402
from tests.helpers.overrides import DependencyOverrides  # noqa: E402
from tests.helpers.providers import ProvideValue  # noqa: E402


@pytest.fixture(scope="session")
def settings() -> Config:
    return get_settings()


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def kv_store(fake_redis: InMemoryRedis) -> KeyValueStore:
    return KeyValueStore(fake_redis)  # type: ignore[arg-type]


@pytest.fixture
def token_manager(kv_store: KeyValueStore) -> TokenManager:
    return TokenManager(kv_store)


@pytest.fixture
def rotator(token_manager: TokenManager) -> RefreshTokenRotator:
    return RefreshTokenRotator(token_manager, revoke_family_on_reuse=True)


@pytest.fixture
def session_registry(kv_store: KeyValueStore) -> SessionRegistry:
    return SessionRegistry(kv_store)


@pytest.fixture
def activity_log(kv_store: KeyValueStore) -> ActivityLog:
    return ActivityLog(kv_store)


@pytest.fixture
def user() -> UserProfile:
    return build_user()


@pytest.fixture
def password() -> str:
    return DEFAULT_PASSWORD


@pytest.fixture
def user_repository(user: UserProfile) -> InMemoryUserRepository:
    return InMemoryUserRepository([user])


@pytest.fixture
def event_publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def web_platform() -> PlatformInfo:
    return PlatformInfo(type=Platform.WEB, user_agent="Mozilla/5.0")


@pytest.fixture
def mobile_platform() -> PlatformInfo:
    return PlatformInfo(
        type=Platform.MOBILE,
        user_agent="MyApp/1.0 react-native",
        device_id="device-1",
        is_native=True,
    )


@pytest.fixture
def app(
    user_repository: InMemoryUserRepository,
    event_publisher: RecordingEventPublisher,
) -> FastAPI:
    return get_application(
        user_repository=user_repository, event_publisher=event_publisher
    )


@pytest.fixture
def dependency_overrides(app: FastAPI) -> Generator[DependencyOverrides]:
    overrides = DependencyOverrides(app)
    yield overrides
    overrides.reset()


@pytest.fixture
def app_with_fakes(
    app: FastAPI,
    dependency_overrides: DependencyOverrides,
    fake_redis: InMemoryRedis,
) -> FastAPI:
    dependency_overrides.set(get_redis_client, ProvideValue(fake_redis))
    return app


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client


@pytest_asyncio.fixture
async def async_client_with_fakes(
    app_with_fakes: FastAPI,
) -> AsyncGenerator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app_with_fakes)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as client:
        yield client
