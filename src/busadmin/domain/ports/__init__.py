"""Domain port definitions for adapters."""

from __future__ import annotations

from .topology import BindingCatalog, BrokerError, BrokerTopology, ExchangeCatalog, QueueCatalog

__all__ = [
    "BindingCatalog",
    "BrokerError",
    "BrokerTopology",
    "ExchangeCatalog",
    "QueueCatalog",
]
