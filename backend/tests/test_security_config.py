import pytest
from pydantic import ValidationError

from community_portal.config import Settings, get_settings

STRONG_ACCESS = "k7Qz2pX9vL4mN8rT1wY6bH3jF5dS0aGc"
STRONG_REFRESH = "Ue4Ri7Oa1Sd9Fg2Hj5Kl8Zx3Cv6Bn0Mq"


def make(**values) -> Settings:
    return Settings(_env_file=None, **values)


def test_placeholder_secrets_fail_closed_in_production():
    with pytest.raises(ValidationError, match="ACCESS_TOKEN_SECRET"):
        make(app_env="production")


@pytest.mark.parametrize(
    "weak",
    [
        "",
        "short-secret",
        "changeme-in-production-changeme-in-production",
        "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa",
    ],
)
def test_weak_secret_fails_closed_in_production(weak):
    with pytest.raises(ValidationError, match="REFRESH_TOKEN_SECRET"):
        make(app_env="production", access_token_secret=STRONG_ACCESS, refresh_token_secret=weak)


def test_identical_secrets_are_rejected_everywhere():
    with pytest.raises(ValidationError, match="must differ"):
        make(app_env="development", access_token_secret=STRONG_ACCESS, refresh_token_secret=STRONG_ACCESS)


def test_strong_secrets_pass_in_production():
    settings = make(app_env="production", access_token_secret=STRONG_ACCESS, refresh_token_secret=STRONG_REFRESH)

    assert settings.is_production
    assert settings.cookie_secure


def test_development_defaults_are_usable():
    settings = make()

    assert not settings.is_production
    assert not settings.cookie_secure
    assert settings.access_token_ttl.total_seconds() == 15 * 60
    assert settings.refresh_token_ttl.days == 7


def test_node_env_selects_production(monkeypatch):
    monkeypatch.setenv("NODE_ENV", "production")
    monkeypatch.setenv("ACCESS_TOKEN_SECRET", STRONG_ACCESS)
    monkeypatch.setenv("REFRESH_TOKEN_SECRET", STRONG_REFRESH)
    get_settings.cache_clear()
    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.is_production
    assert settings.access_token_secret == STRONG_ACCESS
