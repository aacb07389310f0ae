"""Composable request pipeline between the client facade and the transports.

A link receives an operation and a ``forward`` callable for the rest of the
chain and returns an async iterator of results. Queries and mutations yield
exactly one result; subscriptions yield one per event.
"""

from abc import ABC, abstractmethod
from contextlib import aclosing
from collections.abc import AsyncIterator, Callable, Sequence
from functools import reduce

import httpx
import structlog

from campus_hub.client.operations import Operation
from campus_hub.client.results import ExecutionResult, NetworkError
from campus_hub.client.storage import TokenStorage, bearer_value, read_token
from campus_hub.client.websocket import SubscriptionClient

logger = structlog.get_logger(__name__)

NextLink = Callable[[Operation], AsyncIterator[ExecutionResult]]


class Link(ABC):
    """One stage of the request pipeline."""

    @abstractmethod
    def request(self, operation: Operation, forward: NextLink | None = None) -> AsyncIterator[ExecutionResult]:
        """Handle ``operation``, usually by passing it on to ``forward``."""

    def concat(self, other: "Link") -> "Link":
        """Chain ``other`` after this link."""
        return _ChainedLink(self, other)


class _ChainedLink(Link):
    def __init__(self, first: Link, second: Link) -> None:
        self._first = first
        self._second = second

    def request(self, operation: Operation, forward: NextLink | None = None) -> AsyncIterator[ExecutionResult]:
        return self._first.request(operation, lambda op: self._second.request(op, forward))


def from_links(links: Sequence[Link]) -> Link:
    """Chain links left to right; the last one must terminate the request."""
    if not links:
        raise ValueError("At least one link is required")
    return reduce(lambda chain, link: chain.concat(link), links)


def execute(link: Link, operation: Operation) -> AsyncIterator[ExecutionResult]:
    return link.request(operation, None)


def _require_forward(forward: NextLink | None, link: Link) -> NextLink:
    if forward is None:
        raise RuntimeError(f"{type(link).__name__} cannot terminate a link chain")
    return forward


class ErrorLink(Link):
    """Logs field errors and transport failures without touching the results.

    Results pass through unchanged and exceptions are re-raised; this link
    never retries.
    """

    async def request(self, operation: Operation, forward: NextLink | None = None) -> AsyncIterator[ExecutionResult]:
        forward = _require_forward(forward, self)
        try:
            async with aclosing(forward(operation)) as results:
                async for result in results:
                    for error in result.errors:
                        logger.error(
                            "graphql_error",
                            message=error.message,
                            path=list(error.path) if error.path is not None else None,
                            operation=operation.operation_name,
                        )
                    yield result
        except Exception as e:
            logger.error("network_error", error=str(e), operation=operation.operation_name)
            raise


class SplitLink(Link):
    """Routes each operation to one of two links by a predicate.

    By default subscriptions take the first branch and everything else the second.
    """

    def __init__(
        self,
        left: Link,
        right: Link,
        test: Callable[[Operation], bool] = lambda operation: operation.is_subscription,
    ) -> None:
        self._left = left
        self._right = right
        self._test = test

    def request(self, operation: Operation, forward: NextLink | None = None) -> AsyncIterator[ExecutionResult]:
        link = self._left if self._test(operation) else self._right
        return link.request(operation, forward)


class AuthLink(Link):
    """Adds ``authorization: Bearer <token>`` from client storage to each request."""

    def __init__(self, storage: TokenStorage, token_key: str) -> None:
        self._storage = storage
        self._token_key = token_key

    def request(self, operation: Operation, forward: NextLink | None = None) -> AsyncIterator[ExecutionResult]:
        forward = _require_forward(forward, self)
        token = read_token(self._storage, self._token_key)
        headers = {**operation.context.get("headers", {}), "authorization": bearer_value(token)}
        return forward(operation.with_context(headers=headers))


class HttpLink(Link):
    """Terminating link that POSTs operations as JSON.

    Any response carrying ``data`` or ``errors`` is a GraphQL result whatever
    its status code; anything else is a NetworkError.
    """

    def __init__(self, url: str, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def request(self, operation: Operation, forward: NextLink | None = None) -> AsyncIterator[ExecutionResult]:
        headers = {"accept": "application/json", **operation.context.get("headers", {})}
        try:
            response = await self._client.post(self.url, json=operation.to_payload(), headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to {self.url} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and ("data" in body or "errors" in body):
            yield ExecutionResult.from_payload(body)
            return
        raise NetworkError(
            f"Unexpected response from {self.url}: HTTP {response.status_code}",
            status_code=response.status_code,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class WebSocketLink(Link):
    """Terminating link that runs subscriptions over a SubscriptionClient."""

    def __init__(self, client: SubscriptionClient) -> None:
        self.client = client

    async def request(self, operation: Operation, forward: NextLink | None = None) -> AsyncIterator[ExecutionResult]:
        async with aclosing(self.client.subscribe(operation)) as payloads:
            async for payload in payloads:
                yield ExecutionResult.from_payload(payload)

    async def aclose(self) -> None:
        await self.client.close()
