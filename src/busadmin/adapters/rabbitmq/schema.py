"""Pydantic models describing RabbitMQ management API payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ManagementBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class QueuePayload(ManagementBaseModel):
    name: str
    vhost: str
    durable: bool = True
    auto_delete: bool = False
    exclusive: bool = False
    arguments: dict[str, Any] = Field(default_factory=dict)
    # Absent while the queue's stats have not been emitted yet.
    messages: int | None = None
    consumers: int | None = None


class ExchangePayload(ManagementBaseModel):
    name: str
    vhost: str
    type: str
    durable: bool = True
    auto_delete: bool = False
    internal: bool = False
    arguments: dict[str, Any] = Field(default_factory=dict)


class BindingPayload(ManagementBaseModel):
    source: str
    vhost: str
    destination: str
    destination_type: str
    routing_key: str = ""
    arguments: dict[str, Any] = Field(default_factory=dict)
    properties_key: str | None = None


class PageAttrs(ManagementBaseModel):
    page: int
    page_count: int
    page_size: int
    item_count: int
    filtered_count: int | None = None
    total_count: int | None = None

    @property
    def is_last(self) -> bool:
        return self.page >= self.page_count


class QueuePage(PageAttrs):
    items: list[QueuePayload]


class ExchangePage(PageAttrs):
    items: list[ExchangePayload]


class ErrorResponse(ManagementBaseModel):
    error: str
    reason: str | None = None


class QueueDeclaration(ManagementBaseModel):
    durable: bool
    auto_delete: bool
    arguments: dict[str, Any] = Field(default_factory=dict)


class ExchangeDeclaration(ManagementBaseModel):
    type: str
    durable: bool
    auto_delete: bool
    internal: bool
    arguments: dict[str, Any] = Field(default_factory=dict)


class BindingDeclaration(ManagementBaseModel):
    routing_key: str = ""
    arguments: dict[str, Any] = Field(default_factory=dict)
