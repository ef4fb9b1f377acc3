from pydantic import ValidationError
import pytest

from servicehub.core.config import Settings


def test_log_level_is_normalized():
    assert Settings(log_level=" debug ").log_level == "DEBUG"


def test_unknown_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")


def test_currency_is_normalized():
    assert Settings(currency="usd").currency == "USD"


def test_invalid_currency_rejected():
    with pytest.raises(ValidationError):
        Settings(currency="naira")


@pytest.mark.parametrize("field", ["outbox_batch_size", "outbox_max_attempts", "outbox_retry_base_seconds"])
def test_outbox_settings_must_be_positive(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 0})


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OUTBOX_MAX_ATTEMPTS", "9")
    monkeypatch.setenv("DISPATCH_NOTIFICATIONS_INLINE", "false")

    configured = Settings()

    assert configured.outbox_max_attempts == 9
    assert configured.dispatch_notifications_inline is False
