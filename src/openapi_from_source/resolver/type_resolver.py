"""Turns type references into resolved shapes.

One TypeResolver lives for one run. It memoizes every named type it resolves
and tracks per-name state (unvisited, in progress, resolved) so that a type
graph that refers back to itself ends in a Reference instead of recursing
forever.
"""

from enum import Enum

import structlog
from tree_sitter import Node

from openapi_from_source.diagnostics import Category, WarningLog
from openapi_from_source.extractor.base import TypeReference
from openapi_from_source.parser.syntax import named_children, preceding_attributes, text, type_reference
from openapi_from_source.resolver.primitives import MAPPING_TYPES, primitive
from openapi_from_source.resolver.serde import (
    apply_rename_rule,
    container_rename_rule,
    field_attributes,
    variant_name,
)
from openapi_from_source.resolver.symbols import Declaration, SymbolIndex
from openapi_from_source.resolver.types import (
    Collection,
    EnumType,
    FieldDescriptor,
    Mapping,
    OptionalWrapper,
    Reference,
    ResolvedField,
    ResolvedType,
    Struct,
    Unresolvable,
    unwrap_optional,
)

logger = structlog.get_logger(__name__)


class _State(Enum):
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class TypeResolver:
    """Resolves type names against a SymbolIndex with memoization and cycle breaking."""

    def __init__(self, index: SymbolIndex, warnings: WarningLog | None = None):
        self.index = index
        self.warnings = warnings if warnings is not None else WarningLog()
        self._cache: dict[str, ResolvedType] = {}
        self._state: dict[str, _State] = {}
        self._cycle_reported: set[str] = set()

    def resolve(self, name: str) -> ResolvedType:
        """Resolve a type by name. Repeated calls return the cached shape."""
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        if self._state.get(name) is _State.IN_PROGRESS:
            if name not in self._cycle_reported:
                self._cycle_reported.add(name)
                self.warnings.warn(Category.CYCLE, f"circular reference to {name} emitted as $ref")
            return Reference(name=name)

        shape = primitive(name)
        if shape is None:
            declaration = self.index.find_type(name)
            if declaration is None:
                self.warnings.warn(Category.UNRESOLVED, f"type {name} not found")
                shape = Unresolvable(name=name, reason="not found")
            else:
                logger.debug("resolving type", name=name, source=declaration.source)
                self._state[name] = _State.IN_PROGRESS
                shape = self._resolve_declaration(declaration)

        self._state[name] = _State.RESOLVED
        self._cache[name] = shape
        return shape

    def resolve_reference(self, ref: TypeReference, generics: frozenset[str] = frozenset()) -> ResolvedType:
        """Resolve a structural reference (collections, maps, optionality)."""
        if ref.collection and ref.element is not None:
            shape = Collection(element=self.resolve_reference(ref.element, generics))
        elif ref.name in MAPPING_TYPES and ref.args:
            shape = Mapping(value=self.resolve_reference(ref.args[-1], generics))
        elif ref.name in generics:
            shape = Unresolvable(name=ref.name, reason="generic parameter")
        elif ref.name == "tuple":
            shape = Unresolvable(name=str(ref), reason="tuple type")
        elif ref.name == "()":
            shape = Unresolvable(name="()", reason="unit type")
        else:
            shape = self.resolve(ref.name)
        if ref.optional:
            shape = OptionalWrapper(inner=shape)
        return shape

    def cached(self, name: str) -> ResolvedType | None:
        return self._cache.get(name)

    # -- declarations -------------------------------------------------------------

    def _resolve_declaration(self, declaration: Declaration) -> ResolvedType:
        node = declaration.node
        if node.type == "struct_item":
            return self._resolve_struct(declaration)
        if node.type == "enum_item":
            return self._resolve_enum(declaration)
        # type alias
        generics = _type_parameters(node)
        return self.resolve_reference(type_reference(node.child_by_field_name("type")), generics)

    def _resolve_struct(self, declaration: Declaration) -> ResolvedType:
        node = declaration.node
        body = node.child_by_field_name("body")
        generics = _type_parameters(node)

        if body is not None and body.type == "ordered_field_declaration_list":
            members = [c for c in named_children(body) if c.type not in ("attribute_item", "visibility_modifier")]
            if len(members) == 1:
                # newtype structs serialise as their single member
                return self.resolve_reference(type_reference(members[0]), generics)
            return Unresolvable(name=declaration.name, reason="tuple struct")

        rule = container_rename_rule(preceding_attributes(node))
        fields: list[ResolvedField] = []
        claimed: set[str] = set()

        def add(field: ResolvedField) -> None:
            if field.name in claimed:
                self.warnings.warn(
                    Category.FLATTEN,
                    f"{declaration.name}.{field.declared_name}: name '{field.name}' already taken "
                    "by an earlier field; keeping the first",
                    declaration.source,
                )
                return
            claimed.add(field.name)
            fields.append(field)

        for declared in declared_fields(node):
            if declared.serde.skipped:
                continue
            if declared.serde.flattened:
                for merged in self._flatten(declaration, declared, generics):
                    add(merged)
                continue
            external = declared.serde.renamed_to or apply_rename_rule(declared.name, rule)
            shape = self.resolve_reference(declared.type_ref, generics)
            add(ResolvedField(name=external, declared_name=declared.name, shape=shape, optional=declared.optional))

        return Struct(name=declaration.name, fields=tuple(fields))

    def _flatten(
        self, owner: Declaration, declared: FieldDescriptor, generics: frozenset[str]
    ) -> list[ResolvedField]:
        shape, optional = unwrap_optional(self.resolve_reference(declared.type_ref, generics))
        if not isinstance(shape, Struct):
            self.warnings.warn(
                Category.FLATTEN,
                f"{owner.name}.{declared.name}: cannot flatten {declared.type_ref}, field dropped",
                owner.source,
            )
            return []
        if not optional:
            return list(shape.fields)
        return [
            field.model_copy(
                update={
                    "optional": True,
                    "shape": field.shape if field.optional else OptionalWrapper(inner=field.shape),
                }
            )
            for field in shape.fields
        ]

    def _resolve_enum(self, declaration: Declaration) -> ResolvedType:
        node = declaration.node
        rule = container_rename_rule(preceding_attributes(node))
        variants: list[str] = []
        body = node.child_by_field_name("body")
        if body is not None:
            for variant in named_children(body):
                if variant.type != "enum_variant":
                    continue
                name = variant_name(text(variant.child_by_field_name("name")), preceding_attributes(variant), rule)
                if name is not None:
                    variants.append(name)
        return EnumType(name=declaration.name, variants=tuple(variants))


def declared_fields(struct_node: Node) -> list[FieldDescriptor]:
    """Named fields of a struct in declaration order."""
    body = struct_node.child_by_field_name("body")
    if body is None or body.type != "field_declaration_list":
        return []
    fields = []
    for child in named_children(body):
        if child.type != "field_declaration":
            continue
        type_ref = type_reference(child.child_by_field_name("type"))
        fields.append(
            FieldDescriptor(
                name=text(child.child_by_field_name("name")),
                type_ref=type_ref,
                optional=type_ref.optional,
                serde=field_attributes(preceding_attributes(child)),
            )
        )
    return fields


def _type_parameters(node: Node) -> frozenset[str]:
    params = node.child_by_field_name("type_parameters")
    if params is None:
        return frozenset()
    names = set()
    for child in params.named_children:
        if child.type == "type_identifier":
            names.add(text(child))
        elif child.type in ("type_parameter", "constrained_type_parameter", "optional_type_parameter"):
            name = child.child_by_field_name("name") or child.child_by_field_name("left")
            if name is None:
                name = next((c for c in child.named_children if c.type == "type_identifier"), None)
            if name is not None:
                names.add(text(name))
    return frozenset(names)
