"""Helpers for reading the tree-sitter Rust syntax tree.

Node type and field names follow the tree-sitter-rust grammar.
"""

import re
from collections.abc import Iterator

from tree_sitter import Node

from openapi_from_source.extractor.base import TypeReference

TYPE_NODES = {
    "primitive_type",
    "type_identifier",
    "scoped_type_identifier",
    "generic_type",
    "reference_type",
    "pointer_type",
    "tuple_type",
    "unit_type",
    "array_type",
    "abstract_type",
    "dynamic_type",
    "function_type",
    "never_type",
    "bounded_type",
}

COLLECTION_TYPES = {"Vec", "VecDeque", "LinkedList", "HashSet", "BTreeSet", "IndexSet"}
TRANSPARENT_TYPES = {"Box", "Arc", "Rc", "Cow"}

COMMENT_NODES = {"line_comment", "block_comment"}

_RAW_STRING = re.compile(r'^(?:b|c)?r(#*)"(.*)"\1$', re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


def text(node: Node | None) -> str:
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def named_children(node: Node) -> list[Node]:
    """Named children without comments."""
    return [c for c in node.named_children if c.type not in COMMENT_NODES]


def string_value(node: Node | None) -> str | None:
    """Value of a string literal node, or None if the node is not one."""
    if node is None:
        return None
    raw = text(node)
    if node.type == "raw_string_literal":
        match = _RAW_STRING.match(raw)
        return match.group(2) if match else None
    if node.type != "string_literal":
        return None
    body = raw[raw.index('"') + 1 : -1]
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def last_segment(node: Node | None) -> str:
    """Final identifier of a (possibly scoped) path: ``web::scope`` -> ``scope``."""
    if node is None:
        return ""
    if node.type in ("scoped_identifier", "scoped_type_identifier"):
        return text(node.child_by_field_name("name"))
    if node.type == "generic_function":
        return last_segment(node.child_by_field_name("function"))
    if node.type in ("identifier", "type_identifier", "field_identifier"):
        return text(node)
    return ""


# -- items ------------------------------------------------------------------------


def iter_items(node: Node) -> Iterator[Node]:
    """Yield module-level items, descending into inline ``mod`` blocks."""
    for child in named_children(node):
        if child.type == "mod_item":
            body = child.child_by_field_name("body")
            if body is not None:
                yield from iter_items(body)
        else:
            yield child


def preceding_attributes(node: Node) -> list[Node]:
    """``attribute`` nodes of the outer attributes written directly before ``node``."""
    attributes: list[Node] = []
    sibling = node.prev_named_sibling
    while sibling is not None and sibling.type in ("attribute_item", *COMMENT_NODES):
        if sibling.type == "attribute_item":
            attribute = next((c for c in sibling.named_children if c.type == "attribute"), None)
            if attribute is not None:
                attributes.append(attribute)
        sibling = sibling.prev_named_sibling
    attributes.reverse()
    return attributes


def attribute_name(attribute: Node) -> str:
    """Last path segment of an attribute: ``#[actix_web::get(..)]`` -> ``get``."""
    for child in attribute.named_children:
        if child.type in ("identifier", "scoped_identifier"):
            return last_segment(child)
    return ""


def attribute_arguments(attribute: Node) -> Node | None:
    """The token tree between the parentheses of an attribute, if any."""
    arguments = attribute.child_by_field_name("arguments")
    if arguments is None:
        arguments = next((c for c in attribute.named_children if c.type == "token_tree"), None)
    return arguments


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of every named descendant, including ``node``."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.named_children))


# -- calls ------------------------------------------------------------------------


def call_arguments(call: Node) -> list[Node]:
    arguments = call.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [c for c in named_children(arguments) if c.type != "attribute_item"]


def method_call(node: Node) -> tuple[Node, str, list[Node]] | None:
    """Split ``receiver.method(args)`` into its parts.

    Returns None for anything that is not a method call expression.
    """
    if node.type != "call_expression":
        return None
    function = node.child_by_field_name("function")
    if function is None or function.type != "field_expression":
        return None
    receiver = function.child_by_field_name("value")
    method = text(function.child_by_field_name("field"))
    return receiver, method, call_arguments(node)


def plain_call_name(node: Node) -> str | None:
    """Name of a free-function call such as ``get(h)`` or ``web::scope("/")``."""
    if node.type != "call_expression":
        return None
    function = node.child_by_field_name("function")
    if function is None or function.type not in ("identifier", "scoped_identifier", "generic_function"):
        return None
    return last_segment(function) or None


def path_name(node: Node) -> str | None:
    """Name referenced by an identifier or scoped path expression (``handlers::list``)."""
    if node.type in ("identifier", "scoped_identifier"):
        return last_segment(node) or None
    return None


# -- types ------------------------------------------------------------------------


def type_arguments(node: Node | None) -> list[Node]:
    if node is None:
        return []
    return [c for c in node.named_children if c.type in TYPE_NODES]


def generic_parts(node: Node) -> tuple[str, list[Node]] | None:
    """Split ``web::Json<T>`` into ``("Json", [T])``."""
    if node.type != "generic_type":
        return None
    name = last_segment(node.child_by_field_name("type"))
    return name, type_arguments(node.child_by_field_name("type_arguments"))


def type_reference(node: Node | None) -> TypeReference:
    """Build a TypeReference from a type node."""
    if node is None:
        return TypeReference(name="Unknown")
    kind = node.type
    if kind in ("reference_type", "pointer_type"):
        return type_reference(node.child_by_field_name("type"))
    if kind == "unit_type":
        return TypeReference(name="()")
    if kind == "tuple_type":
        return TypeReference(name="tuple", args=tuple(type_reference(c) for c in type_arguments(node)))
    if kind == "array_type":
        return TypeReference.collection_of(type_reference(node.child_by_field_name("element")))
    if kind in ("primitive_type", "type_identifier"):
        return TypeReference(name=text(node))
    if kind == "scoped_type_identifier":
        return TypeReference(name=last_segment(node))
    if kind == "generic_type":
        name, arg_nodes = generic_parts(node)
        args = [type_reference(a) for a in arg_nodes]
        if name == "Option" and args:
            return args[0].as_optional()
        if name in COLLECTION_TYPES and args:
            return TypeReference.collection_of(args[0])
        if name in TRANSPARENT_TYPES and args:
            return args[0]
        return TypeReference(name=name, args=tuple(args))
    return TypeReference(name=text(node))


def unwrap_reference(node: Node) -> Node:
    while node.type in ("reference_type", "pointer_type"):
        inner = node.child_by_field_name("type")
        if inner is None:
            break
        node = inner
    return node
