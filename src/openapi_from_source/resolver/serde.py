"""Reading ``#[serde(...)]`` attributes off declarations."""

import re

from tree_sitter import Node

from openapi_from_source.parser.syntax import attribute_arguments, attribute_name, string_value, text
from openapi_from_source.resolver.types import SerdeAttributes

SKIP_FLAGS = {"skip", "skip_serializing", "skip_deserializing"}

_WORDS = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z]+")


def _serde_tokens(attributes: list[Node]) -> list[tuple[str, str | None]]:
    """Flatten every serde attribute into ``(key, value)`` pairs.

    ``rename = "x"`` gives ``("rename", "x")``, a bare flag gives ``(flag, None)``,
    and ``rename(serialize = "x")`` gives ``("rename.serialize", "x")``.
    """
    pairs: list[tuple[str, str | None]] = []
    for attribute in attributes:
        if attribute_name(attribute) != "serde":
            continue
        arguments = attribute_arguments(attribute)
        if arguments is not None:
            _collect_pairs(arguments, "", pairs)
    return pairs


def _collect_pairs(tree: Node, prefix: str, pairs: list[tuple[str, str | None]]) -> None:
    children = tree.children
    i = 0
    while i < len(children):
        child = children[i]
        if child.type == "identifier":
            key = prefix + text(child)
            nxt = children[i + 1] if i + 1 < len(children) else None
            if nxt is not None and nxt.type == "=" and i + 2 < len(children):
                pairs.append((key, string_value(children[i + 2])))
                i += 3
                continue
            if nxt is not None and nxt.type == "token_tree":
                _collect_pairs(nxt, key + ".", pairs)
                i += 2
                continue
            pairs.append((key, None))
        i += 1


def field_attributes(attributes: list[Node]) -> SerdeAttributes:
    renamed_to = None
    skipped = False
    flattened = False
    for key, value in _serde_tokens(attributes):
        if key in ("rename", "rename.serialize") and value is not None:
            renamed_to = value
        elif key in SKIP_FLAGS:
            skipped = True
        elif key == "flatten":
            flattened = True
    return SerdeAttributes(renamed_to=renamed_to, skipped=skipped, flattened=flattened)


def container_rename_rule(attributes: list[Node]) -> str | None:
    """The ``rename_all`` rule of a struct or enum, if any."""
    for key, value in _serde_tokens(attributes):
        if key in ("rename_all", "rename_all.serialize") and value is not None:
            return value
    return None


def variant_name(name: str, attributes: list[Node], rule: str | None) -> str | None:
    """External name of an enum variant, or None when the variant is skipped."""
    renamed = None
    for key, value in _serde_tokens(attributes):
        if key in SKIP_FLAGS:
            return None
        if key in ("rename", "rename.serialize") and value is not None:
            renamed = value
    if renamed is not None:
        return renamed
    return apply_rename_rule(name, rule, is_variant=True)


def apply_rename_rule(name: str, rule: str | None, is_variant: bool = False) -> str:
    """Apply a serde ``rename_all`` rule.

    Field names are snake_case in source and variant names PascalCase; the
    rule is applied to the words of either.
    """
    if not rule:
        return name
    if is_variant:
        words = [w.lower() for w in _WORDS.findall(name)]
    else:
        words = [w.lower() for w in name.split("_") if w]
    if not words:
        return name
    if rule == "lowercase":
        return "".join(words) if is_variant else name.lower()
    if rule == "UPPERCASE":
        return "".join(words).upper() if is_variant else name.upper()
    if rule == "PascalCase":
        return "".join(w.capitalize() for w in words)
    if rule == "camelCase":
        return words[0] + "".join(w.capitalize() for w in words[1:])
    if rule == "snake_case":
        return "_".join(words)
    if rule == "SCREAMING_SNAKE_CASE":
        return "_".join(words).upper()
    if rule == "kebab-case":
        return "-".join(words)
    if rule == "SCREAMING-KEBAB-CASE":
        return "-".join(words).upper()
    return name
