import pytest
from pydantic import ValidationError

from app.core.config import Settings


def make_settings(**overrides):
    values = {"DATABASE_URL": "sqlite+aiosqlite:///:memory:", "JWT_SECRET": "secret"}
    values.update(overrides)
    return Settings(**values)


@pytest.mark.parametrize(
    "url",
    [
        "postgres://user:pass@db:5432/roadmaps",
        "postgresql://user:pass@db:5432/roadmaps",
        "postgresql+psycopg2://user:pass@db:5432/roadmaps",
    ],
)
def test_postgres_urls_use_asyncpg(url):
    settings = make_settings(DATABASE_URL=url)
    assert settings.DATABASE_URL == "postgresql+asyncpg://user:pass@db:5432/roadmaps"


def test_sqlite_url_is_left_alone():
    assert make_settings().DATABASE_URL == "sqlite+aiosqlite:///:memory:"


def test_cors_origins_accept_comma_separated_string():
    settings = make_settings(CORS_ORIGINS="http://a.test, http://b.test")
    assert settings.CORS_ORIGINS == ["http://a.test", "http://b.test"]


def test_cors_origins_accept_json_list():
    settings = make_settings(CORS_ORIGINS='["http://a.test"]')
    assert settings.CORS_ORIGINS == ["http://a.test"]


def test_invalid_environment_is_rejected():
    with pytest.raises(ValidationError):
        make_settings(ENVIRONMENT="prod")


def test_production_flag():
    assert make_settings(ENVIRONMENT="production").is_production() is True
    assert make_settings().is_production() is False
    assert make_settings().ENFORCE_LEVEL_ORDER is True
