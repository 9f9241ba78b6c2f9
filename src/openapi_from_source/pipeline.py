"""Generation pipeline: source files in, OpenAPI document out.

scan -> parse -> symbol index -> framework selection -> extraction ->
schema generation -> document. Runs serially; one TypeResolver and one
SchemaRegistry per run.
"""

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from openapi_from_source.diagnostics import WarningLog
from openapi_from_source.errors import FrameworkNotDetectedError, NoParseableFilesError, NoSourceFilesError
from openapi_from_source.extractor.actix import ActixExtractor
from openapi_from_source.extractor.axum import AxumExtractor
from openapi_from_source.extractor.base import Framework, RouteDescriptor
from openapi_from_source.extractor.route_extractor import RouteExtractor
from openapi_from_source.generator.document import ApiInfo, DocumentBuilder, OpenApiDocument
from openapi_from_source.generator.schema import SchemaGenerator
from openapi_from_source.parser.detect import detect_frameworks
from openapi_from_source.parser.rust import ParsedFile, parse_files
from openapi_from_source.parser.scanner import scan_rust_files
from openapi_from_source.resolver.symbols import SymbolIndex
from openapi_from_source.resolver.type_resolver import TypeResolver

logger = structlog.get_logger(__name__)

EXTRACTORS: dict[Framework, type[RouteExtractor]] = {
    Framework.AXUM: AxumExtractor,
    Framework.ACTIX_WEB: ActixExtractor,
}


@dataclass
class GenerationResult:
    document: OpenApiDocument
    routes: list[RouteDescriptor]
    warnings: WarningLog
    frameworks: list[Framework] = field(default_factory=list)
    files_scanned: int = 0
    files_parsed: int = 0

    @property
    def route_count(self) -> int:
        return len(self.routes)

    @property
    def schema_count(self) -> int:
        components = self.document.components
        return len(components.schemas) if components is not None else 0

    @property
    def warning_count(self) -> int:
        return len(self.warnings)


def generate(
    files: list[ParsedFile],
    frameworks: list[Framework] | None = None,
    info: ApiInfo | None = None,
    warnings: WarningLog | None = None,
) -> GenerationResult:
    """Build the document for already-parsed files.

    ``frameworks`` defaults to whatever the files import.
    """
    warnings = warnings if warnings is not None else WarningLog()
    if not files:
        raise NoParseableFilesError()

    index = SymbolIndex.build(files)
    selected = list(frameworks) if frameworks else detect_frameworks(files)
    if not selected:
        raise FrameworkNotDetectedError()

    routes: list[RouteDescriptor] = []
    for framework in selected:
        extractor = EXTRACTORS[framework](index, warnings)
        for parsed in files:
            found = extractor.extract(parsed)
            if found:
                logger.debug("extracted routes", framework=framework.value, path=str(parsed.path), routes=len(found))
            routes.extend(found)

    resolver = TypeResolver(index, warnings)
    builder = DocumentBuilder(SchemaGenerator(resolver), info, warnings)
    builder.add_routes(routes)
    document = builder.build()
    logger.debug("built document", paths=len(document.paths), warnings=len(warnings))
    return GenerationResult(
        document=document,
        routes=routes,
        warnings=warnings,
        frameworks=selected,
        files_scanned=len(files),
        files_parsed=len(files),
    )


def generate_from_directory(
    root: Path,
    frameworks: list[Framework] | None = None,
    info: ApiInfo | None = None,
) -> GenerationResult:
    """Scan ``root`` for Rust files and generate the document for them."""
    paths = scan_rust_files(root)
    if not paths:
        raise NoSourceFilesError(root)

    warnings = WarningLog()
    parsed, diagnostics = parse_files(paths)
    warnings.extend(diagnostics)
    if not parsed:
        raise NoParseableFilesError()

    result = generate(parsed, frameworks, info, warnings)
    result.files_scanned = len(paths)
    return result
