"""Unified data models for extracted routes.

Both framework extractors (Axum, Actix-Web) convert what they find into these
standard models for downstream resolution and document building.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Framework(str, Enum):
    AXUM = "axum"
    ACTIX_WEB = "actix-web"


class HttpMethod(str, Enum):
    """HTTP methods in the order operations appear within a path item."""

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    PATCH = "patch"
    HEAD = "head"
    OPTIONS = "options"

    @classmethod
    def from_name(cls, name: str) -> "HttpMethod | None":
        try:
            return cls(name.lower())
        except ValueError:
            return None


class ParameterLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"


class TypeReference(BaseModel):
    """A type as written in source: a name plus structural modifiers.

    ``Option<T>`` is recorded as ``T`` with ``optional`` set, and ``Vec<T>`` as a
    collection whose element is ``args[0]``. Never resolved itself.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    optional: bool = False
    collection: bool = False
    args: tuple["TypeReference", ...] = ()

    @classmethod
    def collection_of(cls, element: "TypeReference") -> "TypeReference":
        return cls(name=element.name, collection=True, args=(element,))

    @property
    def element(self) -> "TypeReference | None":
        if self.collection and self.args:
            return self.args[0]
        return None

    def as_optional(self) -> "TypeReference":
        return self.model_copy(update={"optional": True})

    def as_required(self) -> "TypeReference":
        return self.model_copy(update={"optional": False})

    def __str__(self) -> str:
        if self.collection and self.args:
            rendered = f"Vec<{self.args[0]}>"
        elif self.args:
            rendered = f"{self.name}<{', '.join(str(a) for a in self.args)}>"
        else:
            rendered = self.name
        return f"Option<{rendered}>" if self.optional else rendered


class ParameterDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    location: ParameterLocation
    type_ref: TypeReference
    required: bool


class RouteDescriptor(BaseModel):
    """One endpoint as found in source. Immutable once extracted."""

    model_config = ConfigDict(frozen=True)

    path: str  # /api/users/{id}
    method: HttpMethod
    handler: str
    parameters: tuple[ParameterDescriptor, ...] = ()
    request_body: TypeReference | None = None
    response: TypeReference | None = None
    source: str | None = None

    @property
    def key(self) -> tuple[str, HttpMethod]:
        return self.path, self.method


# -- paths ----------------------------------------------------------------------

_TEMPLATE_PARAM = re.compile(r"\{([^{}/]+)\}")


def normalize_segment(segment: str) -> str:
    """Rewrite one path segment's parameter token into ``{name}`` form.

    Handles ``:id`` and ``*rest`` (Axum 0.7), ``{id}`` and ``{*rest}`` (Axum 0.8),
    and ``{id:\\d+}`` / ``{tail}*`` (Actix-Web).
    """
    if segment[:1] in (":", "*") and len(segment) > 1:
        return "{" + segment[1:] + "}"
    if segment.startswith("{"):
        inner = segment[1:].rstrip("*")
        if inner.endswith("}"):
            name = inner[:-1].lstrip("*").split(":", 1)[0].strip()
            if name:
                return "{" + name + "}"
    return segment


def join_paths(*segments: str) -> str:
    """Concatenate path pieces with exactly one ``/`` between them.

    The result always starts with ``/`` and carries no trailing slash unless it
    is the root path.
    """
    parts: list[str] = []
    for segment in segments:
        for piece in segment.split("/"):
            if piece:
                parts.append(normalize_segment(piece))
    return "/" + "/".join(parts)


def path_parameters(path: str) -> list[str]:
    """Names of the ``{name}`` parameters in a normalized path, in order."""
    return _TEMPLATE_PARAM.findall(path)
