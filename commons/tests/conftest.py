import pytest

from commons.core import config as config_mod


@pytest.fixture(autouse=True)
def fresh_settings():
    # Settings are cached per process; tests that set env vars need a rebuild.
    config_mod.get_settings.cache_clear()
    yield
    config_mod.get_settings.cache_clear()
