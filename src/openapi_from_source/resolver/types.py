"""Resolved type shapes and declared field metadata."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from openapi_from_source.extractor.base import TypeReference


class SerdeAttributes(BaseModel):
    """Field-level ``#[serde(...)]`` settings that change the wire shape."""

    model_config = ConfigDict(frozen=True)

    renamed_to: str | None = None
    skipped: bool = False
    flattened: bool = False


class FieldDescriptor(BaseModel):
    """A struct field as declared in source."""

    model_config = ConfigDict(frozen=True)

    name: str
    type_ref: TypeReference
    optional: bool
    serde: SerdeAttributes = SerdeAttributes()


class PrimitiveKind(str, Enum):
    TEXT = "text"
    INTEGER = "integer"
    FLOATING = "floating"
    BOOLEAN = "boolean"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Primitive(_Frozen):
    kind: Literal["primitive"] = "primitive"
    name: str
    primitive: PrimitiveKind
    format: str | None = None


class ResolvedField(_Frozen):
    """A struct field after serde attributes have been applied."""

    name: str  # externally visible name
    declared_name: str
    shape: "ResolvedType"
    optional: bool = False


class Struct(_Frozen):
    kind: Literal["struct"] = "struct"
    name: str
    fields: tuple[ResolvedField, ...] = ()


class EnumType(_Frozen):
    kind: Literal["enum"] = "enum"
    name: str
    variants: tuple[str, ...] = ()


class Collection(_Frozen):
    kind: Literal["collection"] = "collection"
    element: "ResolvedType"


class Mapping(_Frozen):
    kind: Literal["mapping"] = "mapping"
    value: "ResolvedType"


class OptionalWrapper(_Frozen):
    kind: Literal["optional"] = "optional"
    inner: "ResolvedType"


class Reference(_Frozen):
    """Stand-in returned for a type that is still being resolved (a cycle)."""

    kind: Literal["reference"] = "reference"
    name: str


class Unresolvable(_Frozen):
    kind: Literal["unresolvable"] = "unresolvable"
    name: str
    reason: str


ResolvedType = Annotated[
    Union[Primitive, Struct, EnumType, Collection, Mapping, OptionalWrapper, Reference, Unresolvable],
    Field(discriminator="kind"),
]

for _model in (ResolvedField, Struct, Collection, Mapping, OptionalWrapper):
    _model.model_rebuild()


def unwrap_optional(shape: ResolvedType) -> tuple[ResolvedType, bool]:
    """Strip OptionalWrapper layers, reporting whether any were present."""
    optional = False
    while isinstance(shape, OptionalWrapper):
        optional = True
        shape = shape.inner
    return shape, optional
