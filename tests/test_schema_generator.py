from openapi_from_source.diagnostics import WarningLog
from openapi_from_source.extractor.base import TypeReference
from openapi_from_source.generator.schema import SchemaGenerator, SchemaNode, SchemaRegistry
from openapi_from_source.parser.rust import parse_source
from openapi_from_source.resolver.symbols import SymbolIndex
from openapi_from_source.resolver.type_resolver import TypeResolver

MODELS = """
pub struct User {
    pub id: u64,
    pub name: String,
    #[serde(rename = "email_address")]
    pub email: String,
    pub age: Option<u32>,
    #[serde(skip)]
    pub password_hash: String,
}

pub struct Tree {
    pub label: String,
    pub children: Vec<Tree>,
}

pub struct Team {
    pub members: Vec<User>,
    pub lead: Option<User>,
    pub scores: HashMap<String, i32>,
    pub role: Role,
}

pub enum Role { Admin, Member }
"""


def _generator():
    index = SymbolIndex.build([parse_source(MODELS, "models.rs")])
    return SchemaGenerator(TypeResolver(index, WarningLog()))


class TestSchemaMapping:
    def test_user_scenario(self):
        generator = _generator()
        node = generator.schema_for_reference(TypeReference(name="User"))
        assert node.to_openapi() == {"$ref": "#/components/schemas/User"}
        assert generator.registry.get("User").to_openapi() == {
            "type": "object",
            "properties": {
                "id": {"type": "integer", "format": "int64"},
                "name": {"type": "string"},
                "email_address": {"type": "string"},
                "age": {"type": "integer", "format": "int32"},
            },
            "required": ["id", "name", "email_address"],
        }

    def test_primitive_is_inline(self):
        generator = _generator()
        node = generator.schema_for_reference(TypeReference(name="f64"))
        assert node.to_openapi() == {"type": "number", "format": "double"}
        assert len(generator.registry) == 0

    def test_collections_maps_and_optionals(self):
        generator = _generator()
        generator.schema_for_reference(TypeReference(name="Team"))
        team = generator.registry.get("Team").to_openapi()
        assert team["properties"]["members"] == {"type": "array", "items": {"$ref": "#/components/schemas/User"}}
        assert team["properties"]["lead"] == {"$ref": "#/components/schemas/User"}
        assert team["properties"]["scores"] == {
            "type": "object",
            "additionalProperties": {"type": "integer", "format": "int32"},
        }
        assert team["required"] == ["members", "scores", "role"]

    def test_enum(self):
        generator = _generator()
        generator.schema_for_reference(TypeReference(name="Role"))
        assert generator.registry.get("Role").to_openapi() == {"type": "string", "enum": ["Admin", "Member"]}

    def test_unresolvable_is_opaque_object(self):
        generator = _generator()
        node = generator.schema_for_reference(TypeReference(name="Ghost"))
        assert node.to_openapi() == {"type": "object"}
        assert "Ghost" not in generator.registry


class TestRegistry:
    def test_registered_once(self):
        generator = _generator()
        generator.schema_for_reference(TypeReference(name="User"))
        generator.schema_for_reference(TypeReference(name="Team"))
        generator.schema_for_reference(TypeReference(name="User"))
        assert [name for name, _ in generator.registry.items()] == ["Role", "Team", "User"]

    def test_first_registration_wins(self):
        registry = SchemaRegistry()
        first = SchemaNode(schema_type="string")
        registry.register("Thing", first)
        assert registry.register("Thing", SchemaNode(schema_type="integer")) is first
        assert registry.get("Thing") is first

    def test_reference_node_kind(self):
        node = SchemaNode.reference("User")
        assert node.kind == "reference"
        assert node.target == "User"
        assert SchemaNode(schema_type="string").kind == "string"


class TestCycles:
    def test_self_referential_type_uses_ref(self):
        generator = _generator()
        node = generator.schema_for_reference(TypeReference(name="Tree"))
        assert node.target == "Tree"
        tree = generator.registry.get("Tree").to_openapi()
        assert tree["properties"]["children"] == {"type": "array", "items": {"$ref": "#/components/schemas/Tree"}}

    def test_newtype_cycle_registers_the_newtype(self):
        source = """
        pub struct Comments(pub Vec<Comment>);
        pub struct Comment { pub body: String, pub replies: Comments }
        """
        generator = SchemaGenerator(TypeResolver(SymbolIndex.build([parse_source(source, "comments.rs")])))
        node = generator.schema_for_reference(TypeReference(name="Comments"))
        assert node.to_openapi() == {"type": "array", "items": {"$ref": "#/components/schemas/Comment"}}
        comment = generator.registry.get("Comment").to_openapi()
        assert comment["properties"]["replies"] == {"$ref": "#/components/schemas/Comments"}
        assert generator.registry.get("Comments").to_openapi() == {
            "type": "array",
            "items": {"$ref": "#/components/schemas/Comment"},
        }
        assert _dangling_refs(generator, node) == []

    def test_alias_cycle_registers_the_alias(self):
        source = """
        pub type Link = Node;
        pub struct Node { pub label: String, pub next: Option<Link> }
        """
        generator = SchemaGenerator(TypeResolver(SymbolIndex.build([parse_source(source, "nodes.rs")])))
        node = generator.schema_for_reference(TypeReference(name="Link"))
        assert node.target == "Node"
        assert generator.registry.get("Node").to_openapi()["properties"]["next"] == {"$ref": "#/components/schemas/Link"}
        assert generator.registry.get("Link").to_openapi() == {"$ref": "#/components/schemas/Node"}
        assert _dangling_refs(generator, node) == []


def _dangling_refs(generator, *roots):
    """Reference targets that no registered schema answers to."""
    missing = []
    stack = list(roots) + [schema for _, schema in generator.registry.items()]
    while stack:
        node = stack.pop()
        if node.target is not None and node.target not in generator.registry:
            missing.append(node.target)
        stack.extend((node.properties or {}).values())
        stack.extend(child for child in (node.items, node.additional_properties) if child is not None)
    return missing
