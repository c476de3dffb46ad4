"""
Tests for IcpayConfig
"""

import pydantic
import pytest

from icpay_sdk.config import _ENV_FIELDS, IcpayConfig, NetworkConfig
from icpay_sdk.exceptions import ConfigurationError, ErrorCode


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_FIELDS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults():
    config = IcpayConfig(publishable_key="pk_test")

    assert config.api_url == NetworkConfig.DEFAULT_API_URL
    assert config.poll_max_attempts == NetworkConfig.DEFAULT_POLL_MAX_ATTEMPTS
    assert config.await_server_notification is False
    assert config.public_key == "pk_test"
    assert not config.has_secret_key


def test_secret_key_only():
    config = IcpayConfig(secret_key="sk_test", api_url="https://api.test.icpay/")

    assert config.has_secret_key
    assert config.public_key == "sk_test"
    assert config.api_url == "https://api.test.icpay"


def test_requires_a_key():
    with pytest.raises(ConfigurationError) as exc:
        IcpayConfig()

    assert exc.value.code == ErrorCode.INVALID_CONFIG


def test_blank_publishable_key():
    with pytest.raises(ConfigurationError) as exc:
        IcpayConfig(publishable_key="   ")

    assert exc.value.code == ErrorCode.INVALID_PUBLISHABLE_KEY


def test_poll_settings_must_be_positive():
    with pytest.raises(pydantic.ValidationError):
        IcpayConfig(publishable_key="pk_test", poll_interval_seconds=0)
    with pytest.raises(pydantic.ValidationError):
        IcpayConfig(publishable_key="pk_test", poll_max_attempts=0)


def test_from_env_file(tmp_path, clean_env):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "ICPAY_PUBLISHABLE_KEY=pk_from_file\n"
        "ICPAY_CANISTER_ID=rrkah-fqaaa-aaaaa-aaaaq-cai\n"
        "ICPAY_POLL_MAX_ATTEMPTS=5\n"
        "ICPAY_DEBUG=true\n"
    )

    config = IcpayConfig.from_env(env_file)

    assert config.publishable_key == "pk_from_file"
    assert config.icpay_canister_id == "rrkah-fqaaa-aaaaa-aaaaq-cai"
    assert config.poll_max_attempts == 5
    assert config.debug is True


def test_environment_overrides_file_and_kwargs_override_both(tmp_path, clean_env):
    env_file = tmp_path / ".env"
    env_file.write_text("ICPAY_PUBLISHABLE_KEY=pk_from_file\nICPAY_API_URL=https://file\n")
    clean_env.setenv("ICPAY_PUBLISHABLE_KEY", "pk_from_env")
    clean_env.setenv("ICPAY_AWAIT_SERVER_NOTIFICATION", "1")

    config = IcpayConfig.from_env(env_file, api_url="https://override", secret_key=None)

    assert config.publishable_key == "pk_from_env"
    assert config.api_url == "https://override"
    assert config.await_server_notification is True
    assert config.secret_key is None


def test_from_env_missing_file(tmp_path, clean_env):
    clean_env.setenv("ICPAY_SECRET_KEY", "sk_env")

    config = IcpayConfig.from_env(tmp_path / "missing.env")

    assert config.secret_key == "sk_env"
