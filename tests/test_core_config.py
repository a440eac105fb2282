import pytest

from storysite.core.config import get_settings


def _set_minimum_production_env(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "prod-secret-key")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg2://app:password@db:5432/storysite")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")
    monkeypatch.setenv("APP_PUBLIC_BASE_URL", "https://stories.example.com")
    monkeypatch.setenv("STORAGE_PROVIDER", "cloudinary")
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")


def test_requires_secret_key_in_production(monkeypatch) -> None:
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "")
    get_settings.cache_clear()

    with pytest.raises(ValueError):
        get_settings()


def test_production_accepts_complete_configuration(monkeypatch) -> None:
    _set_minimum_production_env(monkeypatch)
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.env == "production"
    assert settings.storage_provider == "cloudinary"


def test_production_requires_cloudinary_credentials(monkeypatch) -> None:
    _set_minimum_production_env(monkeypatch)
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="CLOUDINARY_API_SECRET"):
        get_settings()


def test_production_rejects_mock_storage(monkeypatch) -> None:
    _set_minimum_production_env(monkeypatch)
    monkeypatch.setenv("STORAGE_PROVIDER", "mock")
    get_settings.cache_clear()

    with pytest.raises(ValueError):
        get_settings()


def test_rejects_unknown_storage_provider(monkeypatch) -> None:
    monkeypatch.setenv("STORAGE_PROVIDER", "ftp")
    get_settings.cache_clear()

    with pytest.raises(ValueError, match="STORAGE_PROVIDER"):
        get_settings()


def test_rejects_invalid_observability_limits(monkeypatch) -> None:
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "1.2")
    monkeypatch.setenv("IP_RATE_LIMIT_REQUESTS_PER_WINDOW", "0")
    get_settings.cache_clear()

    with pytest.raises(ValueError):
        get_settings()


def test_identifier_defaults() -> None:
    settings = get_settings()
    assert settings.platform_domain_suffix == "evertory.com"
    assert settings.identifier_max_length == 30
    assert settings.identifier_fallback == "my-story"
