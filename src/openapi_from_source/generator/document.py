"""Document builder: assembles routes and component schemas into an OpenAPI model."""

import structlog
from pydantic import BaseModel, ConfigDict, Field

from openapi_from_source.diagnostics import Category, WarningLog
from openapi_from_source.extractor.base import HttpMethod, ParameterLocation, RouteDescriptor
from openapi_from_source.generator.schema import SchemaGenerator, SchemaNode
from openapi_from_source.resolver.types import Struct, unwrap_optional

logger = structlog.get_logger(__name__)

OPENAPI_VERSION = "3.0.0"
DEFAULT_TITLE = "Generated API"
DEFAULT_VERSION = "1.0.0"
DEFAULT_DESCRIPTION = "API documentation generated from Rust source code"
JSON_CONTENT = "application/json"

_METHOD_ORDER = {method: i for i, method in enumerate(HttpMethod)}


class _OpenApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ApiInfo(_OpenApiModel):
    title: str = DEFAULT_TITLE
    version: str = DEFAULT_VERSION
    description: str | None = DEFAULT_DESCRIPTION


class Parameter(_OpenApiModel):
    name: str
    location: ParameterLocation = Field(alias="in")
    required: bool
    param_schema: SchemaNode = Field(alias="schema")


class MediaType(_OpenApiModel):
    media_schema: SchemaNode = Field(alias="schema")


class RequestBody(_OpenApiModel):
    description: str | None = None
    required: bool = True
    content: dict[str, MediaType]


class Response(_OpenApiModel):
    description: str
    content: dict[str, MediaType] | None = None


class Operation(_OpenApiModel):
    summary: str | None = None
    operation_id: str | None = Field(default=None, alias="operationId")
    parameters: list[Parameter] | None = None
    request_body: RequestBody | None = Field(default=None, alias="requestBody")
    responses: dict[str, Response]


class Components(_OpenApiModel):
    schemas: dict[str, SchemaNode] = {}


class OpenApiDocument(_OpenApiModel):
    openapi: str = OPENAPI_VERSION
    info: ApiInfo
    paths: dict[str, dict[str, Operation]] = {}
    components: Components | None = None

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class DocumentBuilder:
    """Collects routes into operations; duplicates of (path, method) keep the last."""

    def __init__(
        self,
        generator: SchemaGenerator,
        info: ApiInfo | None = None,
        warnings: WarningLog | None = None,
    ):
        self.generator = generator
        self.info = info or ApiInfo()
        self.warnings = warnings if warnings is not None else WarningLog()
        self._routes: dict[tuple[str, HttpMethod], RouteDescriptor] = {}

    def add_route(self, route: RouteDescriptor) -> None:
        key = route.key
        logger.debug("adding route", method=route.method.value.upper(), path=route.path, handler=route.handler)
        previous = self._routes.get(key)
        if previous is not None:
            self.warnings.warn(
                Category.DUPLICATE_ROUTE,
                f"{route.method.value.upper()} {route.path} registered by both {previous.handler} and "
                f"{route.handler}; keeping {route.handler}",
                route.source,
            )
        self._routes[key] = route

    def add_routes(self, routes: list[RouteDescriptor]) -> None:
        for route in routes:
            self.add_route(route)

    def build(self) -> OpenApiDocument:
        paths: dict[str, dict[str, Operation]] = {}
        used_ids: set[str] = set()
        for key in sorted(self._routes, key=lambda k: (k[0], _METHOD_ORDER[k[1]])):
            path, method = key
            # schemas are generated only for routes that survive deduplication
            operation = self._operation(self._routes[key])
            operation_id = _unique(operation.operation_id, used_ids)
            if operation_id != operation.operation_id:
                operation = operation.model_copy(update={"operation_id": operation_id})
            paths.setdefault(path, {})[method.value] = operation

        components = None
        if len(self.generator.registry):
            components = Components(schemas=dict(self.generator.registry.items()))
        return OpenApiDocument(info=self.info, paths=paths, components=components)

    # -- operations ---------------------------------------------------------------

    def _operation(self, route: RouteDescriptor) -> Operation:
        request_body = None
        if route.request_body is not None:
            schema = self.generator.schema_for_reference(route.request_body)
            request_body = RequestBody(
                description="Request body",
                required=True,
                content={JSON_CONTENT: MediaType(media_schema=schema)},
            )

        if route.response is not None:
            schema = self.generator.schema_for_reference(route.response)
            response = Response(description="Successful response", content={JSON_CONTENT: MediaType(media_schema=schema)})
        else:
            response = Response(description="Successful response")

        parameters = self._parameters(route)
        return Operation(
            summary=f"{route.method.value.upper()} {route.path}",
            operation_id=route.handler,
            parameters=parameters or None,
            request_body=request_body,
            responses={"200": response},
        )

    def _parameters(self, route: RouteDescriptor) -> list[Parameter]:
        """Schemas for every parameter; struct-typed path/query parameters expand by field.

        Later entries with the same (name, location) replace earlier ones in place,
        so typed extractor parameters override the template defaults.
        """
        collected: dict[tuple[str, ParameterLocation], Parameter] = {}
        for descriptor in route.parameters:
            shape, _ = unwrap_optional(self.generator.resolver.resolve_reference(descriptor.type_ref))
            location = descriptor.location
            if location in (ParameterLocation.PATH, ParameterLocation.QUERY) and isinstance(shape, Struct):
                for field in shape.fields:
                    inner, wrapped = unwrap_optional(field.shape)
                    required = location == ParameterLocation.PATH or not (field.optional or wrapped)
                    collected[(field.name, location)] = Parameter(
                        name=field.name,
                        location=location,
                        required=required,
                        param_schema=self.generator.schema_for(inner),
                    )
                continue
            collected[(descriptor.name, location)] = Parameter(
                name=descriptor.name,
                location=location,
                required=True if location == ParameterLocation.PATH else descriptor.required,
                param_schema=self.generator.schema_for(shape),
            )
        return list(collected.values())


def _unique(operation_id: str | None, used: set[str]) -> str | None:
    if operation_id is None:
        return None
    candidate = operation_id
    n = 2
    while candidate in used:
        candidate = f"{operation_id}_{n}"
        n += 1
    used.add(candidate)
    return candidate
