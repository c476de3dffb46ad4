"""
ICPay SDK configuration
"""

import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

from dotenv import dotenv_values
from pydantic import BaseModel, Field, model_validator

from icpay_sdk.exceptions import ConfigurationError, ErrorCode
from icpay_sdk.ledgers.registry import ICP_LEDGER_CANISTER_ID


class NetworkConfig:
    """Default endpoints of the ICPay API and the Internet Computer"""

    DEFAULT_API_URL = "https://api.icpay.com"
    DEFAULT_IC_HOST = "https://ic0.app"
    ICP_LEDGER_CANISTER_ID = ICP_LEDGER_CANISTER_ID

    # Status polling
    DEFAULT_POLL_INTERVAL_SECONDS = 2.0
    DEFAULT_POLL_MAX_ATTEMPTS = 30

    # Payment notification
    DEFAULT_NOTIFY_MAX_ATTEMPTS = 5
    DEFAULT_NOTIFY_DELAY_SECONDS = 1.0

    DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0


# Environment variable -> IcpayConfig field
_ENV_FIELDS = {
    "ICPAY_PUBLISHABLE_KEY": "publishable_key",
    "ICPAY_SECRET_KEY": "secret_key",
    "ICPAY_ACCOUNT_ID": "account_id",
    "ICPAY_ENVIRONMENT": "environment",
    "ICPAY_API_URL": "api_url",
    "ICPAY_IC_HOST": "ic_host",
    "ICPAY_CANISTER_ID": "icpay_canister_id",
    "ICPAY_DEBUG": "debug",
    "ICPAY_ENABLE_EVENTS": "enable_events",
    "ICPAY_AWAIT_SERVER_NOTIFICATION": "await_server_notification",
    "ICPAY_POLL_INTERVAL_SECONDS": "poll_interval_seconds",
    "ICPAY_POLL_MAX_ATTEMPTS": "poll_max_attempts",
    "ICPAY_POLL_TIMEOUT_SECONDS": "poll_timeout_seconds",
}


class IcpayConfig(BaseModel):
    """
    SDK configuration.

    Either ``publishable_key`` (browser / public mode) or ``secret_key``
    (server mode, unlocks the protected API) must be set.
    """

    publishable_key: Optional[str] = None
    secret_key: Optional[str] = None
    account_id: Optional[str] = None
    environment: Literal["production", "development"] = "production"
    api_url: str = NetworkConfig.DEFAULT_API_URL
    ic_host: str = NetworkConfig.DEFAULT_IC_HOST
    icpay_canister_id: Optional[str] = None
    debug: bool = False
    enable_events: bool = True
    await_server_notification: bool = False
    poll_interval_seconds: float = Field(NetworkConfig.DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    poll_max_attempts: int = Field(NetworkConfig.DEFAULT_POLL_MAX_ATTEMPTS, ge=1)
    poll_timeout_seconds: Optional[float] = Field(None, gt=0)
    request_timeout_seconds: float = Field(NetworkConfig.DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0)

    @model_validator(mode="after")
    def _check_credentials(self) -> "IcpayConfig":
        if self.publishable_key is not None and not self.publishable_key.strip():
            raise ConfigurationError(
                "publishable_key must not be blank", code=ErrorCode.INVALID_PUBLISHABLE_KEY
            )
        if not self.publishable_key and not self.secret_key:
            raise ConfigurationError("Either publishable_key or secret_key must be provided")
        self.api_url = self.api_url.rstrip("/")
        return self

    @property
    def has_secret_key(self) -> bool:
        return bool(self.secret_key)

    @property
    def public_key(self) -> str:
        """Key used to authenticate public endpoints"""
        return self.publishable_key or self.secret_key or ""

    @classmethod
    def from_env(
        cls, env_file: Union[str, Path, None] = ".env", **overrides: Any
    ) -> "IcpayConfig":
        """
        Build a configuration from ``ICPAY_*`` environment variables.

        Values from ``env_file`` (read with python-dotenv) are overridden by the
        process environment, which is in turn overridden by keyword arguments.

        Args:
            env_file: Path to a dotenv file, or None to skip it
            **overrides: Explicit field values

        Returns:
            IcpayConfig
        """
        values: dict[str, Any] = {}
        sources: list[dict[str, Optional[str]]] = []
        if env_file is not None and Path(env_file).exists():
            sources.append(dotenv_values(env_file))
        sources.append(dict(os.environ))

        for source in sources:
            for env_name, field_name in _ENV_FIELDS.items():
                raw = source.get(env_name)
                if raw is not None and raw != "":
                    values[field_name] = raw

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
