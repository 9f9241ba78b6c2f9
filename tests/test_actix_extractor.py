from pathlib import Path

from openapi_from_source.diagnostics import Category, WarningLog
from openapi_from_source.extractor.actix import ActixExtractor, route_annotations
from openapi_from_source.extractor.base import HttpMethod, ParameterLocation
from openapi_from_source.parser.rust import parse_files, parse_source
from openapi_from_source.parser.scanner import scan_rust_files
from openapi_from_source.parser.syntax import iter_items
from openapi_from_source.resolver.symbols import SymbolIndex

FIXTURES = Path(__file__).parent / "fixtures"


def _extract_sources(*sources):
    files = [parse_source(source, f"src/file{i}.rs") for i, source in enumerate(sources)]
    warnings = WarningLog()
    extractor = ActixExtractor(SymbolIndex.build(files), warnings)
    routes = [route for parsed in files for route in extractor.extract(parsed)]
    return routes, warnings


def _project_routes():
    files, _ = parse_files(scan_rust_files(FIXTURES / "actix_project"))
    extractor = ActixExtractor(SymbolIndex.build(files), WarningLog())
    return [route for parsed in files for route in extractor.extract(parsed)]


class TestAnnotations:
    def _first_function(self, source):
        parsed = parse_source(source)
        return next(i for i in iter_items(parsed.root) if i.type == "function_item")

    def test_short_form(self):
        function = self._first_function('#[get("/users")]\nasync fn list() {}')
        assert route_annotations(function) == [(HttpMethod.GET, "/users")]

    def test_qualified_form(self):
        function = self._first_function('#[actix_web::post("/users")]\nasync fn create() {}')
        assert route_annotations(function) == [(HttpMethod.POST, "/users")]

    def test_route_with_several_methods(self):
        function = self._first_function('#[route("/ping", method = "GET", method = "HEAD")]\nasync fn ping() {}')
        assert route_annotations(function) == [(HttpMethod.GET, "/ping"), (HttpMethod.HEAD, "/ping")]

    def test_unrelated_attributes_ignored(self):
        function = self._first_function("#[inline]\n#[allow(dead_code)]\nfn helper() {}")
        assert route_annotations(function) == []


class TestUnmountedHandlers:
    def test_bare_annotation_path(self):
        routes, _ = _extract_sources("""
            #[get("/users/{id}")]
            async fn get_user(path: web::Path<u32>) -> web::Json<User> {}
        """)
        (route,) = routes
        assert route.path == "/users/{id}"
        assert route.response.name == "User"
        (parameter,) = route.parameters
        assert parameter.name == "id"
        assert parameter.location == ParameterLocation.PATH
        assert parameter.type_ref.name == "u32"

    def test_regex_segment_normalized(self):
        routes, _ = _extract_sources(r"""
            #[get("/items/{id:\d+}")]
            async fn item() -> impl Responder {}
        """)
        assert routes[0].path == "/items/{id}"
        assert routes[0].response is None


class TestScopes:
    def test_service_under_scope(self):
        routes, _ = _extract_sources("""
            #[get("/users")]
            async fn list(query: web::Query<Pagination>) -> impl Responder {}

            pub fn config(cfg: &mut web::ServiceConfig) {
                cfg.service(web::scope("/api").service(web::scope("/v1").service(list)));
            }
        """)
        (route,) = routes
        assert route.path == "/api/v1/users"
        assert route.parameters[0].name == "query"
        assert route.parameters[0].location == ParameterLocation.QUERY

    def test_fluent_routes(self):
        routes, _ = _extract_sources("""
            async fn list() -> web::Json<Vec<Order>> {}
            async fn create(web::Json(order): web::Json<Order>) -> HttpResponse {}
            async fn health() -> HttpResponse {}

            fn config(cfg: &mut web::ServiceConfig) {
                cfg.service(
                    web::scope("/shop")
                        .service(web::resource("/orders").route(web::get().to(list)).route(web::post().to(create)))
                        .route("/health", web::get().to(health)),
                );
            }
        """)
        assert [(r.method, r.path, r.handler) for r in routes] == [
            (HttpMethod.GET, "/shop/orders", "list"),
            (HttpMethod.POST, "/shop/orders", "create"),
            (HttpMethod.GET, "/shop/health", "health"),
        ]
        assert routes[1].request_body.name == "Order"

    def test_configure_expands_under_prefix(self):
        routes, _ = _extract_sources(
            """
            fn main() {
                App::new().service(web::scope("/api").configure(handlers_config));
            }
            """,
            """
            #[delete("/items/{id}")]
            async fn remove(path: web::Path<u64>) -> HttpResponse {}

            pub fn handlers_config(cfg: &mut web::ServiceConfig) {
                cfg.service(remove);
            }
            """,
        )
        assert [(r.method, r.path, r.source) for r in routes] == [(HttpMethod.DELETE, "/api/items/{id}", "src/file1.rs")]

    def test_service_without_annotation_warns(self):
        routes, warnings = _extract_sources("""
            async fn plain() {}
            fn config(cfg: &mut web::ServiceConfig) { cfg.service(plain); }
        """)
        assert routes == []
        assert warnings.by_category(Category.HANDLER)


class TestFixtureProject:
    def test_all_routes_found(self):
        keys = sorted((r.path, r.method.value, r.handler) for r in _project_routes())
        assert keys == [
            ("/api/health", "get", "health"),
            ("/api/orders", "get", "list_orders"),
            ("/api/orders", "post", "create_order"),
            ("/api/users", "get", "list_users"),
            ("/api/users", "post", "create_user"),
            ("/api/users/{id}", "delete", "delete_user"),
            ("/api/users/{id}", "get", "get_user"),
            ("/ping", "get", "ping"),
            ("/ping", "head", "ping"),
            ("/version", "get", "version"),
        ]

    def test_target_directory_not_scanned(self):
        paths = scan_rust_files(FIXTURES / "actix_project")
        assert all("target" not in p.parts for p in paths)
        assert len(paths) == 4
