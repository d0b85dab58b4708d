"""Configuration parsing tests."""

import pytest
from pydantic import ValidationError

from src.core.config import DEFAULT_CORS_ORIGINS, Settings

DB_URL = "postgresql+asyncpg://user@localhost:5432/testdb"


def test_cors_origins_accepts_csv(monkeypatch) -> None:
    """CSV string in env parses into a list of origins."""
    monkeypatch.setenv(
        "CORS_ORIGINS", "https://portal.sigma.gob, https://caja.sigma.gob/"
    )
    cfg = Settings(database_url=DB_URL)
    assert cfg.cors_origins == ["https://portal.sigma.gob", "https://caja.sigma.gob"]


def test_cors_origins_accepts_json_array(monkeypatch) -> None:
    """JSON array string in env parses and dedupes origins."""
    monkeypatch.setenv(
        "CORS_ORIGINS",
        '["https://portal.sigma.gob","https://portal.sigma.gob/"]',
    )
    cfg = Settings(database_url=DB_URL)
    assert cfg.cors_origins == ["https://portal.sigma.gob"]


def test_cors_origins_blank_falls_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "  ")
    cfg = Settings(database_url=DB_URL)
    assert cfg.cors_origins == DEFAULT_CORS_ORIGINS


def test_cors_origins_rejects_invalid_object(monkeypatch) -> None:
    """Invalid values fail with a clear validation error."""
    monkeypatch.setenv("CORS_ORIGINS", '{"invalid":"json"}')
    with pytest.raises(ValidationError, match="CORS_ORIGINS"):
        Settings(database_url=DB_URL)


@pytest.mark.parametrize("day", [0, 32])
def test_grace_day_must_fit_in_a_month(monkeypatch, day: int) -> None:
    monkeypatch.setenv("MONTHLY_GRACE_DAY", str(day))
    with pytest.raises(ValidationError, match="MONTHLY_GRACE_DAY"):
        Settings(database_url=DB_URL)


def test_collection_rule_defaults(monkeypatch) -> None:
    for name in (
        "MONTHLY_GRACE_DAY",
        "VEHICLE_DEBT_REQUIRES_PAID",
        "OFFLINE_QUEUE_URL",
        "REALTIME_CHANNEL_PREFIX",
    ):
        monkeypatch.delenv(name, raising=False)

    cfg = Settings(database_url=DB_URL, _env_file=None)

    assert cfg.monthly_grace_day == 15
    assert cfg.vehicle_debt_requires_paid is True
    assert cfg.offline_queue_url == "/tmp/sigma/offline"
    assert cfg.realtime_channel_prefix == "sigma:changes"


def test_timezone_defaults_to_panama(monkeypatch) -> None:
    monkeypatch.delenv("TIMEZONE", raising=False)
    cfg = Settings(database_url=DB_URL, _env_file=None)
    assert cfg.timezone == "America/Panama"


def test_timezone_rejects_unknown_zone(monkeypatch) -> None:
    monkeypatch.setenv("TIMEZONE", "America/Atlantis")
    with pytest.raises(ValidationError, match="TIMEZONE"):
        Settings(database_url=DB_URL)
