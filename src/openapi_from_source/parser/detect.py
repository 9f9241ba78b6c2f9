"""Auto-detect which web frameworks a Rust project uses."""

import re

import structlog

from openapi_from_source.extractor.base import Framework
from openapi_from_source.parser.rust import ParsedFile
from openapi_from_source.parser.syntax import text, walk

logger = structlog.get_logger(__name__)

CRATE_FRAMEWORKS = {
    "axum": Framework.AXUM,
    "actix_web": Framework.ACTIX_WEB,
}

_ROOT_CRATE = re.compile(r"^(?:pub(?:\([^)]*\))?\s+)?(?:use|extern\s+crate)\s+(?:::)?(\w+)")


def detect_frameworks(files: list[ParsedFile]) -> list[Framework]:
    """Frameworks imported by any file, in declaration order of Framework.

    A framework counts as used when a file has ``use axum...`` /
    ``use actix_web...`` or an ``extern crate`` for it.
    """
    found: set[Framework] = set()
    for parsed in files:
        for node in walk(parsed.root):
            if node.type not in ("use_declaration", "extern_crate_declaration"):
                continue
            match = _ROOT_CRATE.match(text(node))
            if match and match.group(1) in CRATE_FRAMEWORKS:
                found.add(CRATE_FRAMEWORKS[match.group(1)])
    frameworks = [f for f in Framework if f in found]
    logger.debug("detected frameworks", frameworks=[f.value for f in frameworks])
    return frameworks
