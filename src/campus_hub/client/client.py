"""Client facade: operations in, cached results out."""

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from enum import Enum
from typing import Any, Protocol

import httpx
import structlog
from graphql import DocumentNode, parse

from campus_hub.client.cache import NormalizedCache
from campus_hub.client.links import (
    AuthLink,
    ErrorLink,
    HttpLink,
    Link,
    SplitLink,
    WebSocketLink,
    execute,
    from_links,
)
from campus_hub.client.operations import Operation, OperationError, add_typename
from campus_hub.client.policies import CAMPUS_TYPE_POLICIES
from campus_hub.client.results import ExecutionResult, NetworkError, TransportError
from campus_hub.client.storage import FileTokenStorage, TokenStorage, bearer_value, read_token
from campus_hub.client.websocket import (
    GRAPHQL_WS_PROTOCOL,
    ConnectFunction,
    SubscriptionClient,
    aiohttp_connect,
)
from campus_hub.config import Settings, get_settings

logger = structlog.get_logger(__name__)

_TRANSPORT_ERRORS = (NetworkError, TransportError)


class FetchPolicy(str, Enum):
    CACHE_FIRST = "cache-first"
    NETWORK_ONLY = "network-only"
    CACHE_ONLY = "cache-only"


class _Closable(Protocol):
    async def aclose(self) -> None:
        ...


class CampusClient:
    """GraphQL client with a normalized cache.

    Every call returns results rather than raising for GraphQL or transport
    errors: ``data`` holds whatever resolved, ``errors`` the field errors and
    ``network_error`` a transport failure.

    Example:
        ```python
        client = create_client()
        result = await client.query("{ faculties { id name availability { status } } }")
        async for event in client.subscribe("subscription { broadcastCreated { id title } }"):
            ...
        await client.aclose()
        ```
    """

    def __init__(
        self,
        link: Link,
        cache: NormalizedCache,
        storage: TokenStorage,
        token_key: str,
        closables: Sequence[_Closable] = (),
        subscriptions: SubscriptionClient | None = None,
    ) -> None:
        self.link = link
        self.cache = cache
        self.storage = storage
        self.subscriptions = subscriptions
        self._token_key = token_key
        self._closables = tuple(closables)

    @property
    def token(self) -> str | None:
        return read_token(self.storage, self._token_key)

    def set_token(self, token: str | None) -> None:
        """Persist (or with None, forget) the bearer token used by later requests."""
        if token:
            self.storage.set_item(self._token_key, token)
        else:
            self.storage.remove_item(self._token_key)

    @property
    def authorization(self) -> str:
        return bearer_value(self.token)

    def operation(
        self,
        document: str | DocumentNode,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> Operation:
        """Build an operation with ``__typename`` added to every nested selection."""
        if isinstance(document, str):
            document = parse(document)
        return Operation(
            document=add_typename(document),
            variables=dict(variables or {}),
            operation_name=operation_name,
        )

    async def query(
        self,
        document: str | DocumentNode,
        variables: dict[str, Any] | None = None,
        fetch_policy: FetchPolicy | str = FetchPolicy.CACHE_FIRST,
        operation_name: str | None = None,
    ) -> ExecutionResult:
        operation = self._expect(self.operation(document, variables, operation_name), "query")
        fetch_policy = FetchPolicy(fetch_policy)

        if fetch_policy is not FetchPolicy.NETWORK_ONLY:
            cached = self._read(operation)
            if cached is not None:
                return ExecutionResult(data=cached, from_cache=True)
            if fetch_policy is FetchPolicy.CACHE_ONLY:
                return ExecutionResult(data=None, from_cache=True)

        result = await self._execute_once(operation)
        self._write(operation, result)
        return result

    async def mutate(
        self,
        document: str | DocumentNode,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> ExecutionResult:
        operation = self._expect(self.operation(document, variables, operation_name), "mutation")
        result = await self._execute_once(operation)
        self._write(operation, result)
        return result

    async def subscribe(
        self,
        document: str | DocumentNode,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> AsyncIterator[ExecutionResult]:
        """Yield one result per event, written to the cache as it arrives.

        A transport failure ends the stream with a final result carrying
        ``network_error``.
        """
        operation = self._expect(self.operation(document, variables, operation_name), "subscription")
        try:
            async with aclosing(execute(self.link, operation)) as results:
                async for result in results:
                    self._write(operation, result)
                    yield result
        except _TRANSPORT_ERRORS as e:
            yield ExecutionResult(network_error=e)

    async def watch_query(
        self,
        document: str | DocumentNode,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> AsyncIterator[ExecutionResult]:
        """Cached data first, then the network result, then every cache change.

        Results carrying errors are yielded as received; otherwise the query
        is re-read from the cache after each write and yielded when it changed.
        """
        operation = self._expect(self.operation(document, variables, operation_name), "query")
        changed = asyncio.Event()
        unwatch = self.cache.watch(changed.set)
        try:
            last = self._read(operation)
            if last is not None:
                yield ExecutionResult(data=last, from_cache=True)

            result = await self._execute_once(operation)
            self._write(operation, result)
            if result.has_errors:
                if result.data is not None:
                    last = result.data
                yield result

            while True:
                await changed.wait()
                changed.clear()
                data = self._read(operation)
                if data is not None and data != last:
                    last = data
                    yield ExecutionResult(data=data, from_cache=True)
        finally:
            unwatch()

    async def reset_store(self) -> None:
        """Drop every cached object; watchers see the reset."""
        self.cache.reset()
        logger.info("client_store_reset")

    async def aclose(self) -> None:
        for closable in self._closables:
            await closable.aclose()

    async def __aenter__(self) -> "CampusClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @staticmethod
    def _expect(operation: Operation, kind: str) -> Operation:
        if operation.kind != kind:
            raise OperationError(f"Expected a {kind}, got a {operation.kind}")
        return operation

    async def _execute_once(self, operation: Operation) -> ExecutionResult:
        try:
            async with aclosing(execute(self.link, operation)) as results:
                async for result in results:
                    return result
        except _TRANSPORT_ERRORS as e:
            return ExecutionResult(network_error=e)
        return ExecutionResult(network_error=NetworkError("Transport returned no result"))

    def _read(self, operation: Operation) -> dict[str, Any] | None:
        return self.cache.read_query(operation.document, operation.variables, operation.operation_name)

    def _write(self, operation: Operation, result: ExecutionResult) -> None:
        if result.data:
            self.cache.write(
                operation.document,
                result.data,
                operation.variables,
                operation_name=operation.operation_name,
            )


def create_client(
    settings: Settings | None = None,
    storage: TokenStorage | None = None,
    http_client: httpx.AsyncClient | None = None,
    connect: ConnectFunction = aiohttp_connect,
    subprotocol: str = GRAPHQL_WS_PROTOCOL,
) -> CampusClient:
    """Wire the standard campus client.

    Pipeline: ``ErrorLink -> SplitLink(subscription ? WebSocketLink : AuthLink -> HttpLink)``.
    """
    settings = settings or get_settings()
    storage = storage if storage is not None else FileTokenStorage(settings.token_storage_path)
    token_key = settings.auth_token_key

    def connection_params() -> dict[str, str]:
        return {"Authorization": bearer_value(read_token(storage, token_key))}

    subscriptions = SubscriptionClient(
        settings.graphql_ws_url,
        connection_params=connection_params,
        subprotocol=subprotocol,
        retry_attempts=settings.ws_retry_attempts,
        connect=connect,
    )
    ws_link = WebSocketLink(subscriptions)
    http_link = HttpLink(settings.graphql_http_url, client=http_client)
    link = from_links(
        [
            ErrorLink(),
            SplitLink(ws_link, AuthLink(storage, token_key).concat(http_link)),
        ]
    )
    return CampusClient(
        link=link,
        cache=NormalizedCache(type_policies=CAMPUS_TYPE_POLICIES),
        storage=storage,
        token_key=token_key,
        closables=(http_link, ws_link),
        subscriptions=subscriptions,
    )
