"""Normalized in-memory cache for GraphQL responses.

Objects with a key (``__typename`` plus their key fields) are stored once
under a cache id such as ``Faculty:42`` and referenced as ``{"__ref": id}``
everywhere else, so an update in one response is visible to every query that
selected the object. Types with ``key_fields=False`` are embedded in their
parent and never shared.

How an incoming field value combines with the stored one is decided by
policies, in this order: the field's merge function, then the merge function
of the embedded value's type, then plain replacement.
"""

import copy
import json
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    OperationDefinitionNode,
    SelectionSetNode,
    get_operation_ast,
    value_from_ast_untyped,
)

ROOT_IDS = {
    "query": "ROOT_QUERY",
    "mutation": "ROOT_MUTATION",
    "subscription": "ROOT_SUBSCRIPTION",
}
ROOT_TYPENAMES = {
    "ROOT_QUERY": "Query",
    "ROOT_MUTATION": "Mutation",
    "ROOT_SUBSCRIPTION": "Subscription",
}
REF = "__ref"
TYPENAME = "__typename"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Stand-in for a field the cache has never stored."""

MergeFunction = Callable[[Any, Any], Any]
ReadFunction = Callable[[Any], Any]


def replace(existing: Any, incoming: Any) -> Any:
    return incoming


def shallow_merge(existing: Any, incoming: Any) -> Any:
    """Overlay ``incoming`` keys on ``existing`` when both are objects."""
    if isinstance(existing, dict) and isinstance(incoming, dict):
        return {**existing, **incoming}
    return incoming


def null_if_missing(existing: Any) -> Any:
    """Read never-fetched fields as None instead of a cache miss."""
    return None if existing is MISSING else existing


@dataclass(frozen=True)
class FieldPolicy:
    merge: MergeFunction | None = None
    read: ReadFunction | None = None


@dataclass(frozen=True)
class TypePolicy:
    """Per-type cache behaviour.

    Attributes:
        key_fields: Fields identifying an object; False embeds the type in
            its parent, None falls back to ``id``
        merge: Combines an existing embedded value with an incoming one;
            only consulted for embedded types (``key_fields=False``)
        fields: Per-field policies
    """

    key_fields: Sequence[str] | Literal[False] | None = None
    merge: MergeFunction | None = None
    fields: Mapping[str, FieldPolicy] = field(default_factory=dict)


class _CacheMiss(Exception):
    pass


@dataclass
class _Context:
    fragments: dict[str, FragmentDefinitionNode]
    variables: dict[str, Any]


def _response_key(node: FieldNode) -> str:
    return node.alias.value if node.alias else node.name.value


def _is_included(node: Any, variables: dict[str, Any]) -> bool:
    for directive in node.directives or ():
        name = directive.name.value
        if name not in ("skip", "include"):
            continue
        condition = True
        for argument in directive.arguments or ():
            if argument.name.value == "if":
                condition = bool(value_from_ast_untyped(argument.value, variables))
        if (name == "skip") == condition:
            return False
    return True


def storage_key(node: FieldNode, variables: dict[str, Any]) -> str:
    """``name`` or ``name({"arg":value})`` with arguments resolved from variables."""
    name = node.name.value
    if not node.arguments:
        return name
    args = {arg.name.value: value_from_ast_untyped(arg.value, variables) for arg in node.arguments}
    return f"{name}({json.dumps(args, sort_keys=True, separators=(',', ':'))})"


class NormalizedCache:
    """Normalized response store owned by one client.

    Example:
        ```python
        cache = NormalizedCache(type_policies=CAMPUS_TYPE_POLICIES)
        cache.write(document, response["data"])
        cache.read("Faculty", "42", "department")
        ```
    """

    def __init__(self, type_policies: Mapping[str, TypePolicy] | None = None) -> None:
        self._type_policies = dict(type_policies or {})
        self._data: dict[str, dict[str, Any]] = {}
        self._watchers: list[Callable[[], None]] = []

    # Identity

    def cache_id(self, typename: str | None, obj: Mapping[str, Any]) -> str | None:
        """Cache id for an object of ``typename``, or None if it is embedded."""
        if typename is None:
            return None
        if typename in ROOT_TYPENAMES.values():
            return next(root for root, name in ROOT_TYPENAMES.items() if name == typename)
        policy = self._type_policies.get(typename)
        key_fields = policy.key_fields if policy else None
        if key_fields is False:
            return None
        if key_fields is None:
            key_fields = ("id",)
        values = {}
        for key in key_fields:
            if obj.get(key) is None:
                return None
            values[key] = obj[key]
        if len(values) == 1:
            return f"{typename}:{next(iter(values.values()))}"
        return f"{typename}:{json.dumps(values, sort_keys=True, separators=(',', ':'))}"

    def identify(self, obj: Mapping[str, Any]) -> str | None:
        return self.cache_id(obj.get(TYPENAME), obj)

    # Policies

    def _field_policy(self, typename: str | None, field_name: str) -> FieldPolicy | None:
        policy = self._type_policies.get(typename) if typename else None
        return policy.fields.get(field_name) if policy else None

    def merge(self, typename: str | None, entity_id: str | None, field_name: str, existing: Any, incoming: Any) -> Any:
        """Combine a stored field value with an incoming one.

        ``existing`` is None when nothing is stored yet.
        """
        policy = self._field_policy(typename, field_name)
        if policy is not None and policy.merge is not None:
            return policy.merge(existing, incoming)
        if isinstance(incoming, dict) and REF not in incoming:
            embedded = self._type_policies.get(incoming.get(TYPENAME))
            if embedded is not None and embedded.merge is not None:
                return embedded.merge(existing, incoming)
        return incoming

    # Writing

    def write(
        self,
        document: DocumentNode,
        data: Mapping[str, Any] | None,
        variables: Mapping[str, Any] | None = None,
        root: str | None = None,
        operation_name: str | None = None,
    ) -> None:
        """Normalize one response into the cache.

        The write is staged and committed in one step; watchers are notified
        once, after the commit. Response keys absent from ``data`` are left
        untouched.
        """
        if not data:
            return
        definition = self._definition(document, operation_name)
        root = root or ROOT_IDS[definition.operation.value]
        ctx = _Context(fragments=self._fragments(document), variables=dict(variables or {}))
        staged: dict[str, dict[str, Any]] = {}
        self._write_entity(root, ROOT_TYPENAMES.get(root), data, definition.selection_set, ctx, staged)
        self._data.update(staged)
        self._broadcast()

    def _stage(self, entity_id: str, staged: dict[str, dict[str, Any]]) -> dict[str, Any]:
        if entity_id not in staged:
            staged[entity_id] = dict(self._data.get(entity_id, {}))
        return staged[entity_id]

    def _write_entity(
        self,
        entity_id: str,
        typename: str | None,
        obj: Mapping[str, Any],
        selection_set: SelectionSetNode,
        ctx: _Context,
        staged: dict[str, dict[str, Any]],
    ) -> None:
        fields = self._normalize_fields(obj, typename, selection_set, ctx, staged)
        entity = self._stage(entity_id, staged)
        for name, key, incoming in fields:
            existing = entity.get(key)
            entity[key] = self.merge(typename, entity_id, name, existing, incoming)

    def _normalize_fields(
        self,
        obj: Mapping[str, Any],
        typename: str | None,
        selection_set: SelectionSetNode,
        ctx: _Context,
        staged: dict[str, dict[str, Any]],
    ) -> list[tuple[str, str, Any]]:
        fields = []
        for node in self._collect_fields(selection_set, typename, ctx):
            response_key = _response_key(node)
            if response_key not in obj:
                continue
            value = self._normalize_value(obj[response_key], node.selection_set, ctx, staged)
            fields.append((node.name.value, storage_key(node, ctx.variables), value))
        return fields

    def _normalize_value(
        self,
        value: Any,
        selection_set: SelectionSetNode | None,
        ctx: _Context,
        staged: dict[str, dict[str, Any]],
    ) -> Any:
        if value is None:
            return None
        if isinstance(value, list):
            return [self._normalize_value(item, selection_set, ctx, staged) for item in value]
        if selection_set is None or not isinstance(value, dict):
            return copy.deepcopy(value)

        typename = value.get(TYPENAME)
        entity_id = self.cache_id(typename, value)
        if entity_id is not None:
            self._write_entity(entity_id, typename, value, selection_set, ctx, staged)
            return {REF: entity_id}

        embedded: dict[str, Any] = {}
        for name, key, incoming in self._normalize_fields(value, typename, selection_set, ctx, staged):
            embedded[key] = incoming
        return embedded

    # Reading

    def read_query(
        self,
        document: DocumentNode,
        variables: Mapping[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> dict[str, Any] | None:
        """Answer a query from the cache alone.

        Returns:
            The result data, or None if any selected field is missing
        """
        definition = self._definition(document, operation_name)
        root = ROOT_IDS[definition.operation.value]
        entity = self._data.get(root)
        if entity is None:
            return None
        ctx = _Context(fragments=self._fragments(document), variables=dict(variables or {}))
        try:
            return self._read_object(entity, ROOT_TYPENAMES[root], definition.selection_set, ctx)
        except _CacheMiss:
            return None

    def read(self, typename: str, identifier: str | Mapping[str, Any] | None, field_name: str) -> Any:
        """Stored value of one field (after its read policy), or None. Never fetches.

        ``identifier`` is the object's key value, or a mapping of its key
        fields for composite keys; pass None for root types.
        """
        if identifier is None:
            entity_id = self.cache_id(typename, {})
        elif isinstance(identifier, Mapping):
            entity_id = self.cache_id(typename, identifier)
        else:
            entity_id = f"{typename}:{identifier}"
        entity = self._data.get(entity_id or "", {})
        value = entity.get(field_name, MISSING)
        policy = self._field_policy(typename, field_name)
        if policy is not None and policy.read is not None:
            value = policy.read(value)
        return None if value is MISSING else copy.deepcopy(value)

    def _read_object(
        self,
        entity: Mapping[str, Any],
        typename: str | None,
        selection_set: SelectionSetNode,
        ctx: _Context,
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for node in self._collect_fields(selection_set, typename, ctx):
            name = node.name.value
            if name == TYPENAME:
                result[_response_key(node)] = entity.get(TYPENAME, typename)
                continue
            value = entity.get(storage_key(node, ctx.variables), MISSING)
            policy = self._field_policy(typename, name)
            if policy is not None and policy.read is not None:
                value = policy.read(value)
            if value is MISSING:
                raise _CacheMiss(name)
            result[_response_key(node)] = self._read_value(value, node.selection_set, ctx)
        return result

    def _read_value(self, value: Any, selection_set: SelectionSetNode | None, ctx: _Context) -> Any:
        if value is None:
            return None
        if isinstance(value, list):
            return [self._read_value(item, selection_set, ctx) for item in value]
        if selection_set is None or not isinstance(value, dict):
            return copy.deepcopy(value)
        if REF in value:
            entity = self._data.get(value[REF])
            if entity is None:
                raise _CacheMiss(value[REF])
            return self._read_object(entity, entity.get(TYPENAME), selection_set, ctx)
        return self._read_object(value, value.get(TYPENAME), selection_set, ctx)

    # Selection handling

    @staticmethod
    def _definition(document: DocumentNode, operation_name: str | None) -> OperationDefinitionNode:
        definition = get_operation_ast(document, operation_name)
        if definition is None:
            raise ValueError(f"No operation named {operation_name!r} in document")
        return definition

    @staticmethod
    def _fragments(document: DocumentNode) -> dict[str, FragmentDefinitionNode]:
        return {
            d.name.value: d for d in document.definitions if isinstance(d, FragmentDefinitionNode)
        }

    def _collect_fields(
        self, selection_set: SelectionSetNode, typename: str | None, ctx: _Context
    ) -> list[FieldNode]:
        """Flatten fragments that apply to ``typename`` into a list of fields."""
        fields: list[FieldNode] = []
        for selection in selection_set.selections:
            if not _is_included(selection, ctx.variables):
                continue
            if isinstance(selection, FieldNode):
                fields.append(selection)
                continue
            if isinstance(selection, InlineFragmentNode):
                condition = selection.type_condition
                fragment_selection = selection.selection_set
            elif isinstance(selection, FragmentSpreadNode):
                fragment = ctx.fragments.get(selection.name.value)
                if fragment is None:
                    raise ValueError(f"Unknown fragment {selection.name.value}")
                condition = fragment.type_condition
                fragment_selection = fragment.selection_set
            else:
                continue
            if condition is None or typename is None or condition.name.value == typename:
                fields.extend(self._collect_fields(fragment_selection, typename, ctx))
        return fields

    # Lifecycle

    def extract(self) -> dict[str, dict[str, Any]]:
        """Snapshot of the normalized store."""
        return copy.deepcopy(self._data)

    def reset(self) -> None:
        self._data.clear()
        self._broadcast()

    def watch(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call ``callback`` after every committed write or reset.

        Returns:
            A function that removes the watcher
        """
        self._watchers.append(callback)

        def unwatch() -> None:
            if callback in self._watchers:
                self._watchers.remove(callback)

        return unwatch

    def _broadcast(self) -> None:
        for callback in list(self._watchers):
            callback()
