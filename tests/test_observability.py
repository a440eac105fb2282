from storysite.core import observability
from storysite.core.config import get_settings


def test_init_sentry_is_noop_without_dsn(monkeypatch) -> None:
    observability.reset_observability_for_tests()
    monkeypatch.setenv("SENTRY_DSN", "")
    get_settings.cache_clear()

    assert observability.init_sentry() is False


def test_init_sentry_initializes_once(monkeypatch) -> None:
    observability.reset_observability_for_tests()
    monkeypatch.setenv("SENTRY_DSN", "https://public@example.ingest.sentry.io/1")
    get_settings.cache_clear()
    calls = []
    monkeypatch.setattr(observability, "_call_sentry_init", lambda **kwargs: calls.append(kwargs))

    assert observability.init_sentry() is True
    assert observability.init_sentry() is True
    assert len(calls) == 1
    assert calls[0]["send_default_pii"] is False
    observability.reset_observability_for_tests()
