"""Fatal errors raised by the generation pipeline.

Anything recoverable (a bad file, an unknown type, a duplicate route) is
recorded in the run's WarningLog instead of being raised.
"""

from pathlib import Path


class OpenApiFromSourceError(Exception):
    """Base class for errors that abort a run."""


class NoSourceFilesError(OpenApiFromSourceError):
    def __init__(self, root: Path):
        super().__init__(f"No Rust files found under {root}")
        self.root = root


class NoParseableFilesError(OpenApiFromSourceError):
    def __init__(self):
        super().__init__("None of the Rust files could be parsed")


class FrameworkNotDetectedError(OpenApiFromSourceError):
    def __init__(self):
        super().__init__("No supported web framework detected (expected axum or actix-web)")


class SerializationError(OpenApiFromSourceError):
    pass
