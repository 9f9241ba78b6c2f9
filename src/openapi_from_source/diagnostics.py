"""Run-scoped warning collection.

Every recoverable problem found while scanning, extracting, resolving or
building is appended here so the CLI can report it after the run.
"""

from enum import Enum

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class Category(str, Enum):
    PARSE = "parse"
    REGISTRATION = "registration"
    HANDLER = "handler"
    UNRESOLVED = "unresolved"
    CYCLE = "cycle"
    FLATTEN = "flatten"
    DUPLICATE_ROUTE = "duplicate-route"


class Diagnostic(BaseModel):
    category: Category
    message: str
    source: str | None = None

    def __str__(self) -> str:
        where = f" ({self.source})" if self.source else ""
        return f"[{self.category.value}] {self.message}{where}"


class WarningLog:
    """Ordered list of diagnostics for one run."""

    def __init__(self):
        self._items: list[Diagnostic] = []

    def warn(self, category: Category, message: str, source: str | None = None) -> None:
        diagnostic = Diagnostic(category=category, message=message, source=source)
        self._items.append(diagnostic)
        logger.warning(message, category=category.value, source=source)

    def extend(self, diagnostics: list[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self._items.append(diagnostic)

    def by_category(self, category: Category) -> list[Diagnostic]:
        return [d for d in self._items if d.category == category]

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
