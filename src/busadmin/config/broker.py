"""RabbitMQ management API configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import positive_int_env, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_VHOST = "/"
DEFAULT_PAGE_SIZE = 100
MANAGEMENT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class BrokerConfig:
    """Holds the connection details for the broker's management API."""

    management_url: str
    username: str
    password: str
    vhost: str = DEFAULT_VHOST
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_environment(cls) -> BrokerConfig:
        values = require_env_vars(
            ("BUSADMIN_MANAGEMENT_URL", "BUSADMIN_USERNAME", "BUSADMIN_PASSWORD")
        )
        return cls(
            management_url=values["BUSADMIN_MANAGEMENT_URL"].rstrip("/"),
            username=values["BUSADMIN_USERNAME"],
            password=values["BUSADMIN_PASSWORD"],
            vhost=get_default_vhost(),
            page_size=positive_int_env("BUSADMIN_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        )

    def resilience(self) -> ResilienceConfig:
        return ResilienceConfig(
            name="rabbitmq-management",
            base_url=f"{self.management_url}/api/",
            timeout_seconds=MANAGEMENT_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
            default_headers={"Accept": "application/json"},
            basic_auth=(self.username, self.password),
        )


def get_default_vhost() -> str:
    return os.getenv("BUSADMIN_VHOST") or DEFAULT_VHOST


def get_broker_config() -> BrokerConfig:
    return BrokerConfig.from_environment()
