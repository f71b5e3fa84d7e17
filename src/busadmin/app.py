"""Application wiring between configuration and topology adapters."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from busadmin.adapters.rabbitmq import RabbitMqTopology
from busadmin.config import get_broker_config

if TYPE_CHECKING:
    from busadmin.config import BrokerConfig
    from busadmin.domain.ports import BrokerTopology

log = getLogger(__name__)


def open_topology(config: BrokerConfig | None = None) -> BrokerTopology:
    """Return the broker topology adapter for the configured management API."""

    effective_config = config or get_broker_config()
    log.debug(
        "Using RabbitMQ management API at %s (vhost=%s, page_size=%s)",
        effective_config.management_url,
        effective_config.vhost,
        effective_config.page_size,
    )
    return RabbitMqTopology.from_config(effective_config)
