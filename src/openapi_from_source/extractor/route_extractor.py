"""Shared machinery for framework extractors.

A RouteExtractor turns one parsed file into RouteDescriptors. Subclasses
recognise the framework's registration syntax; this base class analyses the
handler functions those registrations point at.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar

import structlog
from tree_sitter import Node

from openapi_from_source.diagnostics import Category, WarningLog
from openapi_from_source.extractor.base import (
    Framework,
    HttpMethod,
    ParameterDescriptor,
    ParameterLocation,
    RouteDescriptor,
    TypeReference,
    join_paths,
    path_parameters,
)
from openapi_from_source.parser.rust import ParsedFile
from openapi_from_source.parser.syntax import (
    generic_parts,
    named_children,
    path_name,
    string_value,
    text,
    type_arguments,
    type_reference,
    unwrap_reference,
)
from openapi_from_source.resolver.primitives import is_primitive
from openapi_from_source.resolver.symbols import SymbolIndex

logger = structlog.get_logger(__name__)

BODY_WRAPPERS = {"Json"}
PATH_WRAPPERS = {"Path"}
QUERY_WRAPPERS = {"Query"}
HEADER_WRAPPERS = {"TypedHeader", "Header"}

_PATH_PARAMETER_TYPE = TypeReference(name="String")
_HEADER_WORD = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass
class HandlerSignature:
    """What a handler's parameter list and return type say about its route."""

    parameters: list[ParameterDescriptor] = field(default_factory=list)
    path_types: list[TypeReference] = field(default_factory=list)
    path_binding: str | None = None
    path_tuple: bool = False
    request_body: TypeReference | None = None
    response: TypeReference | None = None


class RouteExtractor(ABC):
    framework: ClassVar[Framework]

    def __init__(self, index: SymbolIndex, warnings: WarningLog | None = None):
        self.index = index
        self.warnings = warnings if warnings is not None else WarningLog()
        self._signatures: dict[str, HandlerSignature | None] = {}

    @abstractmethod
    def extract(self, file: ParsedFile) -> list[RouteDescriptor]:
        """Return the routes registered in ``file``."""

    # -- route assembly -----------------------------------------------------------

    def build_route(self, path: str, method: HttpMethod, handler: str, file: ParsedFile) -> RouteDescriptor:
        path = join_paths(path)
        template = path_parameters(path)
        parameters: dict[tuple[str, ParameterLocation], ParameterDescriptor] = {
            (name, ParameterLocation.PATH): ParameterDescriptor(
                name=name, location=ParameterLocation.PATH, type_ref=_PATH_PARAMETER_TYPE, required=True
            )
            for name in template
        }

        signature = self.signature(handler, str(file.path))
        request_body = response = None
        if signature is not None:
            for descriptor in self._path_descriptors(signature, template):
                parameters[(descriptor.name, descriptor.location)] = descriptor
            for descriptor in signature.parameters:
                parameters[(descriptor.name, descriptor.location)] = descriptor
            request_body = signature.request_body
            response = signature.response

        logger.debug("found route", method=method.value.upper(), path=path, handler=handler)
        return RouteDescriptor(
            path=path,
            method=method,
            handler=handler,
            parameters=tuple(parameters.values()),
            request_body=request_body,
            response=response,
            source=str(file.path),
        )

    def _path_descriptors(self, signature: HandlerSignature, template: list[str]) -> list[ParameterDescriptor]:
        if not signature.path_types:
            return []
        if signature.path_tuple:
            return [
                ParameterDescriptor(name=name, location=ParameterLocation.PATH, type_ref=type_ref, required=True)
                for name, type_ref in zip(template, signature.path_types)
            ]
        type_ref = signature.path_types[0]
        name = template[0] if len(template) == 1 else signature.path_binding or "path"
        return [ParameterDescriptor(name=name, location=ParameterLocation.PATH, type_ref=type_ref, required=True)]

    # -- handler analysis ---------------------------------------------------------

    def signature(self, handler: str, site: str | None = None) -> HandlerSignature | None:
        """Analyse the named handler, or warn and return None when it cannot be found."""
        if handler not in self._signatures:
            declaration = self.index.find_function(handler)
            if declaration is None:
                self._signatures[handler] = None
            else:
                self._signatures[handler] = analyze_handler(declaration.node)
        signature = self._signatures[handler]
        if signature is None:
            self.warnings.warn(Category.HANDLER, f"handler {handler} not found; route has no type information", site)
        return signature

    def handler_name(self, node: Node, file: ParsedFile) -> str | None:
        """Name of a handler argument, warning when it is not a plain function path."""
        name = path_name(node)
        if name:
            return name
        self.warnings.warn(
            Category.HANDLER,
            f"inline handler at line {node.start_point[0] + 1} cannot be analysed; route skipped",
            str(file.path),
        )
        return None

    def literal_path(self, node: Node | None, file: ParsedFile) -> str | None:
        value = string_value(node)
        if value is None:
            line = node.start_point[0] + 1 if node is not None else "?"
            self.warnings.warn(Category.REGISTRATION, f"non-literal path at line {line}; registration skipped", str(file.path))
        return value


def analyze_handler(function: Node) -> HandlerSignature:
    """Read a handler's extractor arguments and infer its response payload."""
    signature = HandlerSignature()
    parameters = function.child_by_field_name("parameters")
    if parameters is not None:
        for parameter in named_children(parameters):
            if parameter.type == "parameter":
                _read_parameter(parameter, signature)
    signature.response = infer_response(function.child_by_field_name("return_type"))
    return signature


def _read_parameter(parameter: Node, signature: HandlerSignature) -> None:
    type_node = parameter.child_by_field_name("type")
    if type_node is None:
        return
    parts = generic_parts(unwrap_reference(type_node))
    if parts is None or not parts[1]:
        return
    wrapper, args = parts
    inner = args[0]
    binding = _binding_name(parameter.child_by_field_name("pattern"))

    if wrapper in BODY_WRAPPERS:
        signature.request_body = type_reference(inner)
    elif wrapper in PATH_WRAPPERS:
        if inner.type == "tuple_type":
            signature.path_types = [type_reference(t) for t in type_arguments(inner)]
            signature.path_tuple = True
        else:
            signature.path_types = [type_reference(inner)]
            signature.path_binding = binding
    elif wrapper in QUERY_WRAPPERS:
        type_ref = type_reference(inner)
        signature.parameters.append(
            ParameterDescriptor(
                name=binding or "query",
                location=ParameterLocation.QUERY,
                type_ref=type_ref,
                required=not type_ref.optional,
            )
        )
    elif wrapper in HEADER_WRAPPERS:
        type_ref = type_reference(inner)
        signature.parameters.append(
            ParameterDescriptor(
                name=header_name(type_ref.name),
                location=ParameterLocation.HEADER,
                type_ref=TypeReference(name="String"),
                required=True,
            )
        )


def _binding_name(pattern: Node | None) -> str | None:
    """``Query(params)`` -> ``params``; ``query`` -> ``query``; tuples -> None."""
    if pattern is None:
        return None
    if pattern.type == "mut_pattern":
        inner = named_children(pattern)
        return _binding_name(inner[-1]) if inner else None
    if pattern.type == "identifier":
        return text(pattern)
    if pattern.type == "tuple_struct_pattern":
        wrapper = pattern.child_by_field_name("type")
        for child in named_children(pattern):
            if wrapper is not None and child.id == wrapper.id:
                continue
            return _binding_name(child)
    return None


def header_name(type_name: str) -> str:
    """``UserAgent`` -> ``User-Agent``."""
    return _HEADER_WORD.sub("-", type_name)


def infer_response(node: Node | None) -> TypeReference | None:
    """Payload type of a handler's return type, if it can be read off the signature."""
    if node is None:
        return None
    node = unwrap_reference(node)
    if node.type == "tuple_type":
        for element in type_arguments(node):
            element = unwrap_reference(element)
            parts = generic_parts(element)
            if parts is not None and parts[0] in BODY_WRAPPERS and parts[1]:
                return type_reference(parts[1][0])
        return None
    parts = generic_parts(node)
    if parts is not None:
        name, args = parts
        if name == "Result" and args:
            return infer_response(args[0])
        if name in BODY_WRAPPERS and args:
            return type_reference(args[0])
        return None
    type_ref = type_reference(node)
    if not type_ref.args and is_primitive(type_ref.name):
        return type_ref
    return None
