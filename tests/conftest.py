import pytest

from modelkit.config import Settings, set_settings


@pytest.fixture(autouse=True)
def default_settings():
    """Every test starts from the default priorities."""
    previous = set_settings(Settings())
    yield
    set_settings(previous)
