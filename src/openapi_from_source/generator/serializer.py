"""Render an OpenAPI document as YAML or JSON text."""

import json

import yaml

from openapi_from_source.errors import SerializationError
from openapi_from_source.generator.document import OpenApiDocument

FORMATS = ("yaml", "json")


def serialize_yaml(document: OpenApiDocument) -> str:
    return yaml.safe_dump(document.to_dict(), sort_keys=False, allow_unicode=True)


def serialize_json(document: OpenApiDocument) -> str:
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False)


def serialize(document: OpenApiDocument, fmt: str) -> str:
    if fmt == "yaml":
        return serialize_yaml(document)
    if fmt == "json":
        return serialize_json(document)
    raise SerializationError(f"Unknown output format: {fmt}")
