from pathlib import Path

from openapi_from_source.diagnostics import Category, WarningLog
from openapi_from_source.extractor.axum import AxumExtractor
from openapi_from_source.extractor.base import HttpMethod, ParameterLocation
from openapi_from_source.parser.rust import parse_files, parse_source
from openapi_from_source.parser.scanner import scan_rust_files
from openapi_from_source.resolver.symbols import SymbolIndex

FIXTURES = Path(__file__).parent / "fixtures"


def _extract_sources(*sources):
    files = [parse_source(source, f"src/file{i}.rs") for i, source in enumerate(sources)]
    warnings = WarningLog()
    extractor = AxumExtractor(SymbolIndex.build(files), warnings)
    routes = [route for parsed in files for route in extractor.extract(parsed)]
    return routes, warnings


def _project_routes():
    files, _ = parse_files(scan_rust_files(FIXTURES / "axum_project"))
    extractor = AxumExtractor(SymbolIndex.build(files), WarningLog())
    return [route for parsed in files for route in extractor.extract(parsed)]


def _find(routes, method, path):
    return next(r for r in routes if r.method == method and r.path == path)


class TestRouteRegistration:
    def test_method_chain(self):
        routes, _ = _extract_sources("""
            async fn list() {}
            async fn create() {}
            fn app() -> Router {
                Router::new().route("/users", get(list).post(create))
            }
        """)
        assert [(r.method, r.path, r.handler) for r in routes] == [
            (HttpMethod.GET, "/users", "list"),
            (HttpMethod.POST, "/users", "create"),
        ]

    def test_scoped_method_router(self):
        routes, _ = _extract_sources("""
            async fn health() -> &'static str { "ok" }
            fn app() -> Router { Router::new().route("/health", axum::routing::get(health)) }
        """)
        assert routes[0].method == HttpMethod.GET
        assert routes[0].response.name == "str"

    def test_colon_parameter_normalized(self):
        routes, _ = _extract_sources("""
            async fn get_user(Path(id): Path<u32>) {}
            fn app() -> Router { Router::new().route("/users/:id", get(get_user)) }
        """)
        assert routes[0].path == "/users/{id}"

    def test_path_wrapped_integer_gives_one_parameter(self):
        routes, _ = _extract_sources("""
            async fn get_user(Path(id): Path<u32>) {}
            fn app() -> Router { Router::new().route("/users/{id}", get(get_user)) }
        """)
        (parameter,) = routes[0].parameters
        assert parameter.name == "id"
        assert parameter.location == ParameterLocation.PATH
        assert parameter.required is True
        assert parameter.type_ref.name == "u32"

    def test_template_parameter_without_extractor_defaults_to_string(self):
        routes, _ = _extract_sources("""
            async fn file() {}
            fn app() -> Router { Router::new().route("/files/*path", get(file)) }
        """)
        (parameter,) = routes[0].parameters
        assert parameter.name == "path"
        assert parameter.type_ref.name == "String"

    def test_non_literal_path_is_skipped_with_warning(self):
        routes, warnings = _extract_sources("""
            async fn h() {}
            fn app() -> Router { Router::new().route(USERS, get(h)) }
        """)
        assert routes == []
        assert warnings.by_category(Category.REGISTRATION)

    def test_closure_handler_is_skipped_with_warning(self):
        routes, warnings = _extract_sources("""
            fn app() -> Router { Router::new().route("/", get(|| async { "hi" })) }
        """)
        assert routes == []
        assert warnings.by_category(Category.HANDLER)

    def test_unknown_handler_keeps_route(self):
        routes, warnings = _extract_sources("""
            fn app() -> Router { Router::new().route("/items/:id", get(elsewhere::show)) }
        """)
        assert routes[0].handler == "show"
        assert routes[0].parameters[0].name == "id"
        assert warnings.by_category(Category.HANDLER)


class TestNesting:
    def test_two_level_nesting(self):
        routes, _ = _extract_sources("""
            async fn users() {}
            fn app() -> Router {
                Router::new().nest("/api", Router::new().nest("/v1", Router::new().route("/users", get(users))))
            }
        """)
        assert [r.path for r in routes] == ["/api/v1/users"]

    def test_let_bound_router_only_counted_at_nest_site(self):
        routes, _ = _extract_sources("""
            async fn users() {}
            fn app() -> Router {
                let inner = Router::new().route("/users", get(users));
                Router::new().nest("/api", inner)
            }
        """)
        assert [r.path for r in routes] == ["/api/users"]

    def test_merge_keeps_prefix(self):
        routes, _ = _extract_sources("""
            async fn a() {}
            async fn b() {}
            fn app() -> Router {
                Router::new().nest("/api", Router::new().route("/a", get(a)).merge(Router::new().route("/b", get(b))))
            }
        """)
        assert [r.path for r in routes] == ["/api/a", "/api/b"]

    def test_router_function_across_files(self):
        routes, _ = _extract_sources(
            """
            fn app() -> Router { Router::new().nest("/admin", admin_routes()) }
            """,
            """
            async fn stats() {}
            pub fn admin_routes() -> Router { Router::new().route("/stats", get(stats)) }
            """,
        )
        assert [(r.path, r.source) for r in routes] == [("/admin/stats", "src/file1.rs")]

    def test_self_nesting_does_not_recurse(self):
        routes, warnings = _extract_sources("""
            async fn h() {}
            fn app() -> Router { Router::new().route("/x", get(h)) }
            fn looped() -> Router { Router::new().nest("/again", looped()) }
            fn root() -> Router { Router::new().nest("/r", looped()) }
        """)
        assert [r.path for r in routes] == ["/x"]
        assert warnings.by_category(Category.REGISTRATION)


class TestHandlerSignatures:
    def test_query_and_body(self):
        routes, _ = _extract_sources("""
            async fn search(Query(params): Query<SearchQuery>, Json(body): Json<Filter>) -> Json<Vec<Hit>> {}
            fn app() -> Router { Router::new().route("/search", post(search)) }
        """)
        route = routes[0]
        (query,) = route.parameters
        assert query.name == "params"
        assert query.location == ParameterLocation.QUERY
        assert query.required is True
        assert route.request_body.name == "Filter"
        assert route.response.collection is True
        assert route.response.element.name == "Hit"

    def test_optional_query(self):
        routes, _ = _extract_sources("""
            async fn list(q: Query<Option<Filter>>) {}
            fn app() -> Router { Router::new().route("/", get(list)) }
        """)
        assert routes[0].parameters[0].name == "q"
        assert routes[0].parameters[0].required is False

    def test_typed_header(self):
        routes, _ = _extract_sources("""
            async fn h(TypedHeader(agent): TypedHeader<UserAgent>) {}
            fn app() -> Router { Router::new().route("/", get(h)) }
        """)
        (header,) = routes[0].parameters
        assert header.name == "User-Agent"
        assert header.location == ParameterLocation.HEADER

    def test_response_from_result_and_tuple(self):
        routes, _ = _extract_sources("""
            async fn a() -> Result<Json<User>, AppError> {}
            async fn b() -> (StatusCode, Json<User>) {}
            async fn c() -> Result<(StatusCode, Json<User>), AppError> {}
            async fn d() -> impl IntoResponse {}
            async fn e() -> StatusCode {}
            fn app() -> Router {
                Router::new()
                    .route("/a", get(a))
                    .route("/b", get(b))
                    .route("/c", get(c))
                    .route("/d", get(d))
                    .route("/e", get(e))
            }
        """)
        responses = {r.path: r.response for r in routes}
        assert responses["/a"].name == "User"
        assert responses["/b"].name == "User"
        assert responses["/c"].name == "User"
        assert responses["/d"] is None
        assert responses["/e"] is None


class TestFixtureProject:
    def test_all_routes_found(self):
        keys = sorted((r.path, r.method.value) for r in _project_routes())
        assert keys == [
            ("/api/v1/categories", "get"),
            ("/api/v1/users", "get"),
            ("/api/v1/users", "post"),
            ("/api/v1/users/{id}", "delete"),
            ("/api/v1/users/{id}", "get"),
            ("/api/v1/users/{id}", "put"),
            ("/api/v1/users/{user_id}/posts/{post_id}", "get"),
            ("/health", "get"),
        ]

    def test_tuple_path_zipped_onto_template(self):
        route = _find(_project_routes(), HttpMethod.GET, "/api/v1/users/{user_id}/posts/{post_id}")
        assert [(p.name, p.type_ref.name) for p in route.parameters] == [("user_id", "u64"), ("post_id", "u32")]

    def test_cross_file_handler_types(self):
        route = _find(_project_routes(), HttpMethod.PUT, "/api/v1/users/{id}")
        assert route.handler == "update_user"
        assert route.request_body.name == "UpdateUserRequest"
        assert route.response.name == "User"
