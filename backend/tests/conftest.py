import pytest
from fastapi.testclient import TestClient

from secretshare.config import Settings
from secretshare.context import build_context
from secretshare.main import create_app
from secretshare.services.envelope import Envelope
from secretshare.services.secret_service import SecretService
from secretshare.services.secret_store import FileSecretStore
from tests.test_utils import TEST_SERVER_KEY, StubCaptcha


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temporary store, with rate limiting off."""
    return Settings(
        storage_path=str(tmp_path / "secrets"),
        server_encryption_key=TEST_SERVER_KEY,
        captcha_secret_key="test-captcha-secret",
        rate_limit_enabled=False,
        cleanup_interval_seconds=3600,
    )


@pytest.fixture
def store(settings):
    return FileSecretStore(settings.storage_path)


@pytest.fixture
def envelope():
    return Envelope(TEST_SERVER_KEY)


@pytest.fixture
def captcha():
    return StubCaptcha()


@pytest.fixture
def service(settings, store, envelope, captcha):
    return SecretService(settings, store, envelope=envelope, captcha=captcha)


@pytest.fixture
def app_context(settings, captcha):
    return build_context(settings, captcha=captcha)


@pytest.fixture
def client(app_context):
    """Create a test client around a freshly built context."""
    app = create_app(context=app_context)
    with TestClient(app) as test_client:
        yield test_client
