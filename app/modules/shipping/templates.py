"""
Body template schema trees.

Each carrier operation declares its request body as a small tagged tree:

    Leaf(kind, default)   a scalar placeholder ("string", "number", ...)
    ObjectNode(fields)    a keyed object
    ArrayOf(item)         a list whose placeholder holds one rendered item

render() turns a tree into a fresh JSON placeholder body for the merge
engine; validate_schema() is run per carrier when the registry loads.
"""
import copy
from dataclasses import dataclass
from typing import Any, Mapping, Union

from app.core.exceptions import ConfigurationError

LEAF_KINDS = ("string", "number", "boolean", "array", "object", "any")


@dataclass(frozen=True)
class Leaf:
    kind: str = "any"
    default: Any = None


@dataclass(frozen=True)
class ObjectNode:
    fields: Mapping[str, "Node"]


@dataclass(frozen=True)
class ArrayOf:
    item: "Node"


Node = Union[Leaf, ObjectNode, ArrayOf]

# Shorthands used by the carrier definitions
S = Leaf("string")
N = Leaf("number")
B = Leaf("boolean")
A = Leaf("array")


def obj(**fields: Node) -> ObjectNode:
    return ObjectNode(fields)


def render(node: Node) -> Any:
    """Build a new placeholder tree. Callers may mutate the result freely."""
    if isinstance(node, Leaf):
        return copy.deepcopy(node.default)
    if isinstance(node, ObjectNode):
        return {name: render(child) for name, child in node.fields.items()}
    if isinstance(node, ArrayOf):
        return [render(node.item)]
    raise ConfigurationError(f"Unknown template node {node!r}")


def _default_matches(kind: str, default: Any) -> bool:
    if default is None or kind == "any":
        return True
    if kind == "string":
        return isinstance(default, str)
    if kind == "number":
        return isinstance(default, (int, float)) and not isinstance(default, bool)
    if kind == "boolean":
        return isinstance(default, bool)
    if kind == "array":
        return isinstance(default, list)
    if kind == "object":
        return isinstance(default, dict)
    return False


def validate_schema(node: Node, path: str = "$") -> None:
    """
    Check a template tree for structural mistakes.

    Raises:
        ConfigurationError: unknown node or leaf kind, a default that does not
            match its kind, or an empty/non-string field name
    """
    if isinstance(node, Leaf):
        if node.kind not in LEAF_KINDS:
            raise ConfigurationError(f"{path}: unknown leaf kind {node.kind!r}")
        if not _default_matches(node.kind, node.default):
            raise ConfigurationError(
                f"{path}: default {node.default!r} is not a valid {node.kind}"
            )
        return

    if isinstance(node, ObjectNode):
        for name, child in node.fields.items():
            if not isinstance(name, str) or not name:
                raise ConfigurationError(f"{path}: invalid field name {name!r}")
            validate_schema(child, f"{path}.{name}")
        return

    if isinstance(node, ArrayOf):
        validate_schema(node.item, f"{path}[]")
        return

    raise ConfigurationError(f"{path}: unknown template node {type(node).__name__}")


def schema_from_json(value: Any) -> Node:
    """Infer a tree from a plain JSON template (null leaves become Leaf("any"))."""
    if isinstance(value, dict):
        return ObjectNode({name: schema_from_json(child) for name, child in value.items()})
    if isinstance(value, list):
        if not value:
            return Leaf("array", default=[])
        return ArrayOf(schema_from_json(value[0]))
    if value is None:
        return Leaf("any")
    if isinstance(value, bool):
        return Leaf("boolean", default=value)
    if isinstance(value, (int, float)):
        return Leaf("number", default=value)
    if isinstance(value, str):
        return Leaf("string", default=value)
    raise ConfigurationError(f"Unsupported template value {value!r}")
