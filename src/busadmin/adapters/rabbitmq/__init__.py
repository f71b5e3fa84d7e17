"""Public interface for the RabbitMQ management adapter."""

from __future__ import annotations

from .client import RabbitMqApiError, RabbitMqManagementClient
from .schema import BindingPayload, ExchangePage, ExchangePayload, QueuePage, QueuePayload
from .topology import RabbitMqTopology, name_regex

__all__ = [
    "BindingPayload",
    "ExchangePage",
    "ExchangePayload",
    "QueuePage",
    "QueuePayload",
    "RabbitMqApiError",
    "RabbitMqManagementClient",
    "RabbitMqTopology",
    "name_regex",
]
