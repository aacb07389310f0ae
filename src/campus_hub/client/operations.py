"""Outgoing GraphQL operations.

An Operation carries the parsed document, so its kind (query, mutation,
subscription) is known statically and never depends on runtime content.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from graphql import (
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    NameNode,
    OperationDefinitionNode,
    SelectionSetNode,
    Visitor,
    get_operation_ast,
    parse,
    print_ast,
    visit,
)

TYPENAME = "__typename"


class OperationError(ValueError):
    """The document has no operation matching the requested name."""


def add_typename(document: DocumentNode) -> DocumentNode:
    """Return a copy of ``document`` selecting ``__typename`` in every nested selection set.

    The operation's root selection set is left alone; the cache needs type
    names to identify and normalize objects, not roots. Inline fragments share
    their parent's object, so only fields and fragment definitions get one.
    """
    return visit(document, _TypenameAdder())


class _TypenameAdder(Visitor):
    def leave_field(self, node: FieldNode, *_args: Any) -> FieldNode | None:
        if node.selection_set is None:
            return None
        return replace(node, selection_set=_with_typename(node.selection_set))

    def leave_fragment_definition(self, node: FragmentDefinitionNode, *_args: Any) -> FragmentDefinitionNode:
        return replace(node, selection_set=_with_typename(node.selection_set))


def _with_typename(selection_set: SelectionSetNode) -> SelectionSetNode:
    if any(
        isinstance(s, FieldNode) and s.name.value == TYPENAME and s.alias is None
        for s in selection_set.selections
    ):
        return selection_set
    return replace(
        selection_set,
        selections=(*selection_set.selections, FieldNode(name=NameNode(value=TYPENAME))),
    )


@dataclass(frozen=True)
class Operation:
    """One GraphQL operation plus its per-request context.

    Attributes:
        document: Parsed GraphQL document
        variables: Variable values
        operation_name: Which operation of the document to run
        context: Link-chain context (e.g. ``headers``); links derive new
            operations with ``with_context`` instead of mutating this one
    """

    document: DocumentNode
    variables: dict[str, Any] = field(default_factory=dict)
    operation_name: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_string(
        cls,
        source: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> "Operation":
        return cls(document=parse(source), variables=variables or {}, operation_name=operation_name)

    @property
    def definition(self) -> OperationDefinitionNode:
        definition = get_operation_ast(self.document, self.operation_name)
        if definition is None:
            raise OperationError(f"No operation named {self.operation_name!r} in document")
        return definition

    @property
    def kind(self) -> str:
        """"query", "mutation" or "subscription"."""
        return self.definition.operation.value

    @property
    def is_subscription(self) -> bool:
        return self.kind == "subscription"

    @property
    def query(self) -> str:
        return print_ast(self.document)

    def with_context(self, **updates: Any) -> "Operation":
        return replace(self, context={**self.context, **updates})

    def to_payload(self) -> dict[str, Any]:
        """Wire payload shared by the HTTP body and the socket subscribe message."""
        payload: dict[str, Any] = {"query": self.query, "variables": self.variables}
        if self.operation_name:
            payload["operationName"] = self.operation_name
        return payload
