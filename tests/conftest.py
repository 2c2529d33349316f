import pytest
from fastapi.testclient import TestClient

from auth.jwt import TokenSigner
from auth.service import AuthService
from auth.store import InMemoryUserStore
from config.settings import Settings

TEST_SECRET = "test-secret-do-not-use"


def make_settings(**overrides) -> Settings:
    """Settings isolated from any local .env, with a cheap bcrypt cost."""
    values = dict(
        jwt_secret=TEST_SECRET,
        database_url="memory://",
        bcrypt_rounds=4,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(name="make_settings")
def make_settings_fixture():
    return make_settings


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def signer() -> TokenSigner:
    return TokenSigner(TEST_SECRET, ttl_seconds=7200)


@pytest.fixture()
def store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture()
def service(store, signer) -> AuthService:
    return AuthService(store, signer, min_password_length=6, bcrypt_rounds=4)


@pytest.fixture()
def client(settings):
    from main import create_app

    with TestClient(create_app(settings)) as c:
        yield c
