"""Schema generator: maps resolved types onto OpenAPI schema nodes.

Named shapes (structs and enums) are written once into the SchemaRegistry and
referenced everywhere else through ``#/components/schemas/<name>``.
"""

import structlog
from pydantic import BaseModel, ConfigDict, Field

from openapi_from_source.extractor.base import TypeReference
from openapi_from_source.resolver.type_resolver import TypeResolver
from openapi_from_source.resolver.types import (
    Collection,
    EnumType,
    Mapping,
    OptionalWrapper,
    Primitive,
    PrimitiveKind,
    Reference,
    ResolvedType,
    Struct,
    Unresolvable,
    unwrap_optional,
)

logger = structlog.get_logger(__name__)

REF_PREFIX = "#/components/schemas/"

_PRIMITIVE_TYPES = {
    PrimitiveKind.TEXT: "string",
    PrimitiveKind.INTEGER: "integer",
    PrimitiveKind.FLOATING: "number",
    PrimitiveKind.BOOLEAN: "boolean",
}


class SchemaNode(BaseModel):
    """An OpenAPI schema object."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ref: str | None = Field(default=None, alias="$ref")
    schema_type: str | None = Field(default=None, alias="type")
    format: str | None = None
    properties: dict[str, "SchemaNode"] | None = None
    required: list[str] | None = None
    items: "SchemaNode | None" = None
    additional_properties: "SchemaNode | None" = Field(default=None, alias="additionalProperties")
    enum: list[str] | None = None

    @classmethod
    def reference(cls, name: str) -> "SchemaNode":
        return cls(ref=REF_PREFIX + name)

    @property
    def kind(self) -> str | None:
        return "reference" if self.ref else self.schema_type

    @property
    def target(self) -> str | None:
        """Schema name a reference node points at."""
        if self.ref and self.ref.startswith(REF_PREFIX):
            return self.ref[len(REF_PREFIX) :]
        return None

    def to_openapi(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


SchemaNode.model_rebuild()

OPAQUE_OBJECT = SchemaNode(schema_type="object")


class SchemaRegistry:
    """Named component schemas; the first registration of a name wins."""

    def __init__(self):
        self._schemas: dict[str, SchemaNode] = {}

    def register(self, name: str, node: SchemaNode) -> SchemaNode:
        existing = self._schemas.get(name)
        if existing is not None:
            if existing != node:
                logger.warning("conflicting schema ignored", name=name)
            return existing
        self._schemas[name] = node
        return node

    def get(self, name: str) -> SchemaNode | None:
        return self._schemas.get(name)

    def items(self) -> list[tuple[str, SchemaNode]]:
        return sorted(self._schemas.items())

    def __contains__(self, name: str) -> bool:
        return name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)


class SchemaGenerator:
    """Builds schema nodes from resolved shapes, filling a SchemaRegistry as it goes."""

    def __init__(self, resolver: TypeResolver, registry: SchemaRegistry | None = None):
        self.resolver = resolver
        self.registry = registry if registry is not None else SchemaRegistry()
        self._building: set[str] = set()

    def schema_for_reference(self, ref: TypeReference) -> SchemaNode:
        return self.schema_for(self.resolver.resolve_reference(ref))

    def schema_for(self, shape: ResolvedType) -> SchemaNode:
        if isinstance(shape, Primitive):
            return SchemaNode(schema_type=_PRIMITIVE_TYPES[shape.primitive], format=shape.format)
        if isinstance(shape, Collection):
            return SchemaNode(schema_type="array", items=self.schema_for(shape.element))
        if isinstance(shape, Mapping):
            return SchemaNode(schema_type="object", additional_properties=self.schema_for(shape.value))
        if isinstance(shape, OptionalWrapper):
            # optionality is expressed by the owner's required list
            return self.schema_for(shape.inner)
        if isinstance(shape, Struct):
            if shape.name not in self.registry and shape.name not in self._building:
                self._building.add(shape.name)
                try:
                    self.registry.register(shape.name, self._object_schema(shape))
                finally:
                    self._building.discard(shape.name)
            return SchemaNode.reference(shape.name)
        if isinstance(shape, EnumType):
            self.registry.register(shape.name, SchemaNode(schema_type="string", enum=list(shape.variants)))
            return SchemaNode.reference(shape.name)
        if isinstance(shape, Reference):
            self._ensure_registered(shape.name)
            return SchemaNode.reference(shape.name)
        if isinstance(shape, Unresolvable):
            return OPAQUE_OBJECT
        raise TypeError(f"unexpected resolved type: {shape!r}")

    def _object_schema(self, shape: Struct) -> SchemaNode:
        properties: dict[str, SchemaNode] = {}
        required: list[str] = []
        for field in shape.fields:
            inner, wrapped = unwrap_optional(field.shape)
            properties[field.name] = self.schema_for(inner)
            if not (field.optional or wrapped):
                required.append(field.name)
        return SchemaNode(schema_type="object", properties=properties, required=required or None)

    def _ensure_registered(self, name: str) -> None:
        # A cycle reference may point at a type no route has asked for directly,
        # or at an alias or newtype whose shape carries no name of its own.
        if name in self.registry or name in self._building:
            return
        target = self.resolver.cached(name)
        if target is None:
            return
        if isinstance(target, (Struct, EnumType)) and target.name == name:
            self.schema_for(target)
            return
        self._building.add(name)
        try:
            node = self.schema_for(target)
        finally:
            self._building.discard(name)
        if node.target == name:
            node = OPAQUE_OBJECT
        self.registry.register(name, node)
