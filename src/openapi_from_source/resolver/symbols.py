"""Project-wide index of type and function declarations."""

from dataclasses import dataclass

import structlog
from tree_sitter import Node

from openapi_from_source.parser.rust import ParsedFile
from openapi_from_source.parser.syntax import iter_items, method_call, path_name, plain_call_name, text, walk

logger = structlog.get_logger(__name__)

TYPE_ITEMS = {"struct_item", "enum_item", "type_item"}

# Methods whose argument is expanded at the call site: nest/merge take a
# router, service/configure take an Actix handler or configuration function.
MOUNT_METHODS = {"nest": 1, "merge": 0, "service": 0, "configure": 0}


@dataclass(frozen=True)
class Declaration:
    """Where a name is declared: its syntax node and the file it lives in."""

    name: str
    node: Node
    file: ParsedFile

    @property
    def source(self) -> str:
        return str(self.file.path)


class SymbolIndex:
    """Name -> declaration lookup built once per run; read-only afterwards.

    When a name is declared more than once the first declaration in file order
    wins.
    """

    def __init__(
        self,
        types: dict[str, Declaration],
        functions: dict[str, Declaration],
        mounted: frozenset[str] = frozenset(),
    ):
        self._types = dict(types)
        self._functions = dict(functions)
        self._mounted = mounted

    @classmethod
    def build(cls, files: list[ParsedFile]) -> "SymbolIndex":
        types: dict[str, Declaration] = {}
        functions: dict[str, Declaration] = {}
        mounted: set[str] = set()
        for parsed in files:
            for item in iter_items(parsed.root):
                name = text(item.child_by_field_name("name"))
                if not name:
                    continue
                if item.type in TYPE_ITEMS:
                    target = types
                elif item.type == "function_item":
                    target = functions
                else:
                    continue
                if name in target:
                    logger.debug("duplicate declaration ignored", name=name, path=str(parsed.path))
                    continue
                target[name] = Declaration(name=name, node=item, file=parsed)
            mounted.update(_mount_names(parsed.root))
        logger.debug("built symbol index", types=len(types), functions=len(functions), mounted=len(mounted))
        return cls(types, functions, frozenset(mounted))

    def find_type(self, name: str) -> Declaration | None:
        return self._types.get(name)

    def find_function(self, name: str) -> Declaration | None:
        return self._functions.get(name)

    def is_mounted(self, name: str) -> bool:
        """Whether a function is referenced from a nesting construct somewhere."""
        return name in self._mounted

    @property
    def type_names(self) -> list[str]:
        return sorted(self._types)

    @property
    def function_names(self) -> list[str]:
        return sorted(self._functions)


def _mount_names(root: Node) -> set[str]:
    names: set[str] = set()
    for node in walk(root):
        parts = method_call(node)
        if parts is None:
            continue
        _, method, args = parts
        position = MOUNT_METHODS.get(method)
        if position is None or len(args) <= position:
            continue
        target = args[position]
        name = path_name(target) if method in ("service", "configure") else plain_call_name(target)
        if name and not _is_router_constructor(target):
            names.add(name)
    return names


def _is_router_constructor(node: Node) -> bool:
    # Router::new() / web::scope("/x") are inline chains, not named mounts
    return plain_call_name(node) in ("new", "scope", "resource")
