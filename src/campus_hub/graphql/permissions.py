"""Strawberry permission classes."""

from typing import Any

from strawberry.permission import BasePermission
from strawberry.types import Info

from .context import get_principal


class IsAuthenticated(BasePermission):
    message = "Authentication required"
    error_extensions = {"code": "UNAUTHENTICATED"}

    def has_permission(self, source: Any, info: Info, **kwargs: Any) -> bool:
        return get_principal(info) is not None
