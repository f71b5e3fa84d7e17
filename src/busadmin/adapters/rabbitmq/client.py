"""HTTP client for the RabbitMQ management API."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote, unquote

import httpx
from pydantic import ValidationError

from busadmin.adapters.http_resilience import ResilientClient
from busadmin.domain.ports import BrokerError

from .schema import (
    BindingPayload,
    ErrorResponse,
    ExchangePage,
    QueuePage,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from pydantic import BaseModel

    from busadmin.config.broker import BrokerConfig
    from busadmin.config.http_resilience import ResilienceConfig

    from .schema import BindingDeclaration, ExchangeDeclaration, QueueDeclaration

log = getLogger(__name__)


class RabbitMqApiError(BrokerError):
    """Raised when the management API answers with an error status or bad payload."""


def _segment(value: str) -> str:
    # vhost "/" must travel as %2F
    return quote(value, safe="")


class RabbitMqManagementClient:
    """Low-level client; one request per call, run synchronously."""

    def __init__(
        self,
        *,
        config: BrokerConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience()
        self._client_factory = client_factory or ResilientClient

    # Listings

    def queues_page(
        self,
        vhost: str,
        *,
        page: int,
        page_size: int,
        name_regex: str | None = None,
    ) -> QueuePage:
        path = f"queues/{_segment(vhost)}"
        payload = asyncio.run(self._get(path, params=_page_params(page, page_size, name_regex)))
        return _validate(QueuePage, payload)

    def exchanges_page(
        self,
        vhost: str,
        *,
        page: int,
        page_size: int,
        name_regex: str | None = None,
    ) -> ExchangePage:
        path = f"exchanges/{_segment(vhost)}"
        payload = asyncio.run(self._get(path, params=_page_params(page, page_size, name_regex)))
        return _validate(ExchangePage, payload)

    def bindings(self, vhost: str) -> list[BindingPayload]:
        payload = asyncio.run(self._get(f"bindings/{_segment(vhost)}"))
        if not isinstance(payload, list):
            raise RabbitMqApiError("Unexpected bindings payload")
        return [_validate(BindingPayload, item) for item in payload]

    # Mutations

    def put_queue(self, vhost: str, name: str, declaration: QueueDeclaration) -> None:
        path = f"queues/{_segment(vhost)}/{_segment(name)}"
        asyncio.run(self._send("PUT", path, json=declaration.model_dump()))

    def delete_queue(self, vhost: str, name: str) -> None:
        asyncio.run(self._send("DELETE", f"queues/{_segment(vhost)}/{_segment(name)}"))

    def purge_queue(self, vhost: str, name: str) -> None:
        path = f"queues/{_segment(vhost)}/{_segment(name)}/contents"
        asyncio.run(self._send("DELETE", path))

    def put_exchange(self, vhost: str, name: str, declaration: ExchangeDeclaration) -> None:
        path = f"exchanges/{_segment(vhost)}/{_segment(name)}"
        asyncio.run(self._send("PUT", path, json=declaration.model_dump()))

    def delete_exchange(self, vhost: str, name: str) -> None:
        asyncio.run(self._send("DELETE", f"exchanges/{_segment(vhost)}/{_segment(name)}"))

    def create_binding(
        self,
        vhost: str,
        *,
        exchange: str,
        queue: str,
        declaration: BindingDeclaration,
    ) -> str | None:
        """Create a binding and return its properties key when the broker reports it."""
        path = f"bindings/{_segment(vhost)}/e/{_segment(exchange)}/q/{_segment(queue)}"
        response = asyncio.run(self._send("POST", path, json=declaration.model_dump()))
        location = response.headers.get("location")
        if not location:
            return None
        return unquote(location.rstrip("/").rsplit("/", 1)[-1])

    def delete_binding(
        self,
        vhost: str,
        *,
        exchange: str,
        queue: str,
        properties_key: str,
    ) -> None:
        path = (
            f"bindings/{_segment(vhost)}/e/{_segment(exchange)}/q/{_segment(queue)}/"
            f"{_segment(properties_key)}"
        )
        asyncio.run(self._send("DELETE", path))

    # Transport

    async def _get(self, path: str, *, params: dict[str, str] | None = None) -> object:
        response = await self._send("GET", path, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise RabbitMqApiError(f"Invalid JSON from GET {path}") from exc

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: object = None,
    ) -> httpx.Response:
        async with self._client_factory(self._resilience) as client:
            if json is None:
                response = await client.request(method, path, params=params)
            else:
                response = await client.request(method, path, params=params, json=json)
        if response.is_error:
            raise _api_error(method, path, response)
        log.debug("%s %s -> %s", method, path, response.status_code)
        return response


def _page_params(page: int, page_size: int, name_regex: str | None) -> dict[str, str]:
    params = {"page": str(page), "page_size": str(page_size)}
    if name_regex is not None:
        params["name"] = name_regex
        params["use_regex"] = "true"
    return params


def _api_error(method: str, path: str, response: httpx.Response) -> RabbitMqApiError:
    reason = _error_reason(response)
    log.debug("RabbitMQ API error %s on %s %s: %s", response.status_code, method, path, reason)
    return RabbitMqApiError(f"{response.status_code} {reason}", code=response.status_code)


def _error_reason(response: httpx.Response) -> str:
    try:
        error = ErrorResponse.model_validate(response.json())
    except ValueError:
        return response.reason_phrase
    return error.reason or error.error


def _validate[M: BaseModel](model: type[M], payload: object) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RabbitMqApiError(f"Unexpected {model.__name__} payload: {exc}") from exc
