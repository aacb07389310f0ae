"""Per-operation GraphQL context.

HTTP operations carry their credential in the ``Authorization`` header.
Socket operations carry it in the connection-init params, which strawberry
stores on the context as ``connection_params`` once the handshake is done.
Either way an absent or invalid token means an anonymous context; resolvers
enforce access, the transport never rejects.
"""

from typing import Any

from fastapi.requests import HTTPConnection
from strawberry.types import Info

from campus_hub.entities import Principal
from campus_hub.errors import AuthenticationError
from campus_hub.services import CampusServices


async def get_context(connection: HTTPConnection) -> dict[str, Any]:
    """Context getter for the strawberry FastAPI router."""
    return {"services": connection.app.state.services}


def get_services(info: Info) -> CampusServices:
    return info.context["services"]


def _authorization_value(context: dict[str, Any]) -> str | None:
    params = context.get("connection_params")
    if isinstance(params, dict):
        return params.get("Authorization") or params.get("authorization")
    request = context.get("request")
    if request is None:
        return None
    return request.headers.get("authorization")


def get_principal(info: Info) -> Principal | None:
    """Decode (once per context) the caller's principal, or None."""
    context = info.context
    if "principal" not in context:
        auth = get_services(info).auth
        context["principal"] = auth.principal_from_authorization(_authorization_value(context))
    return context["principal"]


def require_principal(info: Info) -> Principal:
    principal = get_principal(info)
    if principal is None:
        raise AuthenticationError("Authentication required")
    return principal
