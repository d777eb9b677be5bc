import pytest
from crpt_document_service.core.config import get_settings
from crpt_document_service.services import crpt_gateway


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch) -> None:
    """
    Pin CRPT settings for tests so nothing depends on the system env.

    The process-wide limiter is dropped too: every test starts with an
    empty window.
    """
    monkeypatch.setenv("CRPT_BASE_URL", "https://crpt.test/api/v3")
    monkeypatch.setenv("CRPT_TOKEN", "test-token")
    monkeypatch.setenv("CRPT_RL_LIMIT", "10")
    monkeypatch.setenv("CRPT_RL_PERIOD_S", "1")
    monkeypatch.setenv("CRPT_RL_POLL_INTERVAL_S", "0.01")
    monkeypatch.setenv("CRPT_RL_MAX_WAIT_S", "5")

    # Clear cached Settings so env changes take effect
    get_settings.cache_clear()
    crpt_gateway.reset_limiter()
