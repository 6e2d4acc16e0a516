import pytest

from cotasks.settings import get_settings


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_settings():
    """Drop cached settings so environment overrides in one test do not leak into the next."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
