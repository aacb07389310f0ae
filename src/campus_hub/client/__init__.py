"""Typed GraphQL client for the campus API."""

from campus_hub.client.cache import (
    MISSING,
    FieldPolicy,
    NormalizedCache,
    TypePolicy,
    null_if_missing,
    replace,
    shallow_merge,
)
from campus_hub.client.client import CampusClient, FetchPolicy, create_client
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
from campus_hub.client.results import ExecutionResult, GraphQLErrorEntry, NetworkError, TransportError
from campus_hub.client.storage import FileTokenStorage, MemoryTokenStorage, TokenStorage, bearer_value
from campus_hub.client.websocket import (
    GRAPHQL_TRANSPORT_WS_PROTOCOL,
    GRAPHQL_WS_PROTOCOL,
    ConnectionState,
    SubscriptionClient,
)

__all__ = [
    "AuthLink",
    "CAMPUS_TYPE_POLICIES",
    "CampusClient",
    "ConnectionState",
    "ErrorLink",
    "ExecutionResult",
    "FetchPolicy",
    "FieldPolicy",
    "FileTokenStorage",
    "GRAPHQL_TRANSPORT_WS_PROTOCOL",
    "GRAPHQL_WS_PROTOCOL",
    "GraphQLErrorEntry",
    "HttpLink",
    "Link",
    "MISSING",
    "MemoryTokenStorage",
    "NetworkError",
    "NormalizedCache",
    "Operation",
    "OperationError",
    "SplitLink",
    "SubscriptionClient",
    "TokenStorage",
    "TransportError",
    "TypePolicy",
    "WebSocketLink",
    "add_typename",
    "bearer_value",
    "create_client",
    "execute",
    "from_links",
    "null_if_missing",
    "replace",
    "shallow_merge",
]
