"""Axum extractor: routes registered through ``Router`` method chains.

    Router::new()
        .route("/users", get(list_users).post(create_user))
        .nest("/api", api_routes())
        .merge(admin)

Nested routers are followed whether they are written inline, bound with
``let`` in the same function, or returned by another function in the project.
"""

from dataclasses import dataclass

import structlog
from tree_sitter import Node

from openapi_from_source.diagnostics import Category
from openapi_from_source.extractor.base import Framework, HttpMethod, RouteDescriptor, join_paths
from openapi_from_source.extractor.route_extractor import RouteExtractor
from openapi_from_source.parser.rust import ParsedFile
from openapi_from_source.parser.syntax import (
    call_arguments,
    iter_items,
    method_call,
    named_children,
    plain_call_name,
    text,
    walk,
)

logger = structlog.get_logger(__name__)


@dataclass
class _Scope:
    """One function body being walked."""

    file: ParsedFile
    bindings: dict[str, Node]
    consumed: set[str]
    routes: list[RouteDescriptor]


class AxumExtractor(RouteExtractor):
    framework = Framework.AXUM

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
                # expanded where it is nested or merged
                continue
            self._expand_function(name, item, file, "", routes)
        return routes

    # -- functions ----------------------------------------------------------------

    def _expand_function(
        self, name: str, function: Node, file: ParsedFile, prefix: str, routes: list[RouteDescriptor]
    ) -> None:
        body = function.child_by_field_name("body")
        if body is None:
            return
        if name in self._active:
            self.warnings.warn(Category.REGISTRATION, f"router function {name} nests itself; ignored", str(file.path))
            return
        self._active.add(name)
        try:
            bindings = _let_bindings(body)
            scope = _Scope(file=file, bindings=bindings, consumed=_nested_bindings(body, bindings), routes=routes)
            self._visit(body, prefix, scope)
        finally:
            self._active.discard(name)

    def _visit(self, node: Node, prefix: str, scope: _Scope) -> None:
        if node.type == "let_declaration":
            pattern = node.child_by_field_name("pattern")
            if pattern is not None and text(pattern) in scope.consumed:
                return
        if method_call(node) is not None:
            self._chain(node, prefix, scope)
            return
        for child in named_children(node):
            self._visit(child, prefix, scope)

    # -- router chains ------------------------------------------------------------

    def _chain(self, node: Node, prefix: str, scope: _Scope) -> None:
        parts = method_call(node)
        if parts is None:
            for child in named_children(node):
                self._visit(child, prefix, scope)
            return

        receiver, method, args = parts
        # receiver first so routes come out in source order
        self._chain(receiver, prefix, scope)

        if method == "route" and len(args) >= 2:
            path = self.literal_path(args[0], scope.file)
            if path is None:
                return
            for http_method, handler_node in self._method_router(args[1], scope):
                handler = self.handler_name(handler_node, scope.file)
                if handler is not None:
                    scope.routes.append(self.build_route(join_paths(prefix, path), http_method, handler, scope.file))
        elif method == "nest" and len(args) >= 2:
            path = self.literal_path(args[0], scope.file)
            if path is not None:
                self._router(args[1], join_paths(prefix, path), scope)
        elif method == "merge" and args:
            self._router(args[0], prefix, scope)
        else:
            for arg in args:
                self._visit(arg, prefix, scope)

    def _router(self, node: Node, prefix: str, scope: _Scope) -> None:
        """Expand a router passed to ``nest``/``merge`` under ``prefix``."""
        if node.type == "identifier":
            bound = scope.bindings.get(text(node))
            if bound is not None and bound.type != "identifier":
                self._router(bound, prefix, scope)
            else:
                self.warnings.warn(
                    Category.REGISTRATION,
                    f"cannot follow router {text(node)} at line {node.start_point[0] + 1}",
                    str(scope.file.path),
                )
            return
        name = plain_call_name(node)
        if name is not None:
            declaration = self.index.find_function(name)
            if declaration is not None:
                logger.debug("expanding router function", name=name, prefix=prefix)
                self._expand_function(name, declaration.node, declaration.file, prefix, scope.routes)
                return
        self._chain(node, prefix, scope)

    def _method_router(self, node: Node, scope: _Scope) -> list[tuple[HttpMethod, Node]]:
        """``get(a).post(b)`` -> ``[(GET, a), (POST, b)]``."""
        parts = method_call(node)
        if parts is not None:
            receiver, method, args = parts
            found = self._method_router(receiver, scope)
            http_method = HttpMethod.from_name(method)
            if http_method is not None and args:
                found.append((http_method, args[0]))
            return found

        name = plain_call_name(node)
        http_method = HttpMethod.from_name(name) if name else None
        arguments = call_arguments(node)
        if http_method is None or not arguments:
            self.warnings.warn(
                Category.REGISTRATION,
                f"unsupported method router {text(node)!r} at line {node.start_point[0] + 1}",
                str(scope.file.path),
            )
            return []
        return [(http_method, arguments[0])]


def _let_bindings(body: Node) -> dict[str, Node]:
    bindings: dict[str, Node] = {}
    for node in walk(body):
        if node.type != "let_declaration":
            continue
        pattern = node.child_by_field_name("pattern")
        value = node.child_by_field_name("value")
        if pattern is not None and value is not None and pattern.type == "identifier":
            bindings[text(pattern)] = value
    return bindings


def _nested_bindings(body: Node, bindings: dict[str, Node]) -> set[str]:
    """Names of ``let`` routers that are passed to ``nest``/``merge``."""
    consumed: set[str] = set()
    for node in walk(body):
        parts = method_call(node)
        if parts is None:
            continue
        _, method, args = parts
        if method == "nest" and len(args) >= 2:
            target = args[1]
        elif method == "merge" and args:
            target = args[0]
        else:
            continue
        if target.type == "identifier" and text(target) in bindings:
            consumed.add(text(target))
    return consumed
