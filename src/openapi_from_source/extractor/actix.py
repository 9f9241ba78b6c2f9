"""Actix-Web extractor: annotated handlers mounted through scopes.

    #[get("/users/{id}")]
    async fn get_user(path: web::Path<u32>) -> impl Responder { ... }

    cfg.service(web::scope("/api").service(get_user));

Handlers are registered with ``.service(h)``, fluent ``.route("/p",
web::get().to(h))`` calls, or ``web::resource("/p").route(...)``. A
``.configure(f)`` call expands ``f`` under the current prefix. Annotated
handlers that nothing mounts are reported at their bare annotation path.
"""

import structlog
from tree_sitter import Node

from openapi_from_source.diagnostics import Category
from openapi_from_source.extractor.base import Framework, HttpMethod, RouteDescriptor, join_paths
from openapi_from_source.extractor.route_extractor import RouteExtractor
from openapi_from_source.parser.rust import ParsedFile
from openapi_from_source.parser.syntax import (
    attribute_arguments,
    attribute_name,
    call_arguments,
    iter_items,
    method_call,
    named_children,
    path_name,
    plain_call_name,
    preceding_attributes,
    string_value,
    text,
)

logger = structlog.get_logger(__name__)

NESTING_CONSTRUCTORS = {"scope", "resource"}


def route_annotations(function: Node) -> list[tuple[HttpMethod, str]]:
    """Methods and paths declared by ``#[get("/p")]``-style attributes on a function."""
    found: list[tuple[HttpMethod, str]] = []
    for attribute in preceding_attributes(function):
        name = attribute_name(attribute)
        arguments = attribute_arguments(attribute)
        if arguments is None:
            continue
        tokens = named_children(arguments)
        path = string_value(tokens[0]) if tokens else None
        if path is None:
            continue
        if name == "route":
            for i, token in enumerate(tokens[:-1]):
                if token.type == "identifier" and text(token) == "method":
                    method = HttpMethod.from_name(string_value(tokens[i + 1]) or "")
                    if method is not None:
                        found.append((method, path))
            continue
        method = HttpMethod.from_name(name)
        if method is not None:
            found.append((method, path))
    return found


class ActixExtractor(RouteExtractor):
    framework = Framework.ACTIX_WEB

    def __init__(self, index, warnings=None):
        super().__init__(index, warnings)
        self._active: set[str] = set()

    def extract(self, file: ParsedFile) -> list[RouteDescriptor]:
        routes: list[RouteDescriptor] = []
        for item in iter_items(file.root):
            if item.type != "function_item":
                continue
            name = text(item.child_by_field_name("name"))
            if self.index.is_mounted(name):
                continue
            for method, path in route_annotations(item):
                routes.append(self.build_route(path, method, name, file))
            self._expand_function(name, item, file, "", routes)
        return routes

    def _expand_function(
        self, name: str, function: Node, file: ParsedFile, prefix: str, routes: list[RouteDescriptor]
    ) -> None:
        body = function.child_by_field_name("body")
        if body is None:
            return
        if name in self._active:
            self.warnings.warn(Category.REGISTRATION, f"configure function {name} includes itself; ignored", str(file.path))
            return
        self._active.add(name)
        try:
            self._visit(body, prefix, file, routes)
        finally:
            self._active.discard(name)

    def _visit(self, node: Node, prefix: str, file: ParsedFile, routes: list[RouteDescriptor]) -> None:
        if method_call(node) is not None:
            self._chain(node, prefix, file, routes)
            return
        for child in named_children(node):
            self._visit(child, prefix, file, routes)

    # -- chains -------------------------------------------------------------------

    def _chain(self, node: Node, prefix: str, file: ParsedFile, routes: list[RouteDescriptor]) -> None:
        base, calls = _unchain(node)
        constructor = plain_call_name(base)
        if constructor in NESTING_CONSTRUCTORS:
            arguments = call_arguments(base)
            segment = self.literal_path(arguments[0] if arguments else None, file)
            if segment is None:
                return
            prefix = join_paths(prefix, segment)
            resource = constructor == "resource"
        else:
            resource = False
            for child in named_children(base):
                self._visit(child, prefix, file, routes)

        for method, args in calls:
            if method == "service" and args:
                self._service(args[0], prefix, file, routes)
            elif method == "route" and len(args) >= 2:
                path = self.literal_path(args[0], file)
                if path is not None:
                    self._route(args[1], join_paths(prefix, path), file, routes)
            elif method == "route" and len(args) == 1 and resource:
                self._route(args[0], prefix, file, routes)
            elif method == "configure" and args:
                self._configure(args[0], prefix, file, routes)
            else:
                for arg in args:
                    self._visit(arg, prefix, file, routes)

    def _service(self, node: Node, prefix: str, file: ParsedFile, routes: list[RouteDescriptor]) -> None:
        name = path_name(node)
        if name is None:
            # web::scope(..) / web::resource(..) chains
            self._visit(node, prefix, file, routes)
            return
        declaration = self.index.find_function(name)
        if declaration is None:
            self.warnings.warn(Category.HANDLER, f"service {name} not found", str(file.path))
            return
        annotations = route_annotations(declaration.node)
        if not annotations:
            self.warnings.warn(Category.HANDLER, f"service {name} has no route annotation", str(file.path))
            return
        for method, path in annotations:
            routes.append(self.build_route(join_paths(prefix, path), method, name, file))

    def _route(self, node: Node, path: str, file: ParsedFile, routes: list[RouteDescriptor]) -> None:
        """``web::get().to(handler)`` registered at ``path``."""
        parts = method_call(node)
        if parts is not None:
            receiver, method_name, args = parts
            method = HttpMethod.from_name(plain_call_name(receiver) or "")
            if method_name == "to" and method is not None and args:
                handler = self.handler_name(args[0], file)
                if handler is not None:
                    routes.append(self.build_route(path, method, handler, file))
                return
        self.warnings.warn(
            Category.REGISTRATION,
            f"unsupported route definition {text(node)!r} at line {node.start_point[0] + 1}",
            str(file.path),
        )

    def _configure(self, node: Node, prefix: str, file: ParsedFile, routes: list[RouteDescriptor]) -> None:
        name = path_name(node)
        if name is None:
            self._visit(node, prefix, file, routes)
            return
        declaration = self.index.find_function(name)
        if declaration is None:
            self.warnings.warn(Category.REGISTRATION, f"configure function {name} not found", str(file.path))
            return
        logger.debug("expanding configure function", name=name, prefix=prefix)
        self._expand_function(name, declaration.node, declaration.file, prefix, routes)


def _unchain(node: Node) -> tuple[Node, list[tuple[str, list[Node]]]]:
    """Split ``base.a(x).b(y)`` into ``base`` and ``[("a", [x]), ("b", [y])]``."""
    calls: list[tuple[str, list[Node]]] = []
    parts = method_call(node)
    while parts is not None:
        receiver, method, args = parts
        calls.append((method, args))
        node = receiver
        parts = method_call(node)
    calls.reverse()
    return node, calls
