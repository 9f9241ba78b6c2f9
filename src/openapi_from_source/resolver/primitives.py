"""Fixed table of Rust types that map straight onto JSON scalars."""

from openapi_from_source.resolver.types import Primitive, PrimitiveKind

_TEXT = PrimitiveKind.TEXT
_INT = PrimitiveKind.INTEGER
_FLOAT = PrimitiveKind.FLOATING

PRIMITIVES: dict[str, tuple[PrimitiveKind, str | None]] = {
    "String": (_TEXT, None),
    "str": (_TEXT, None),
    "char": (_TEXT, None),
    "i8": (_INT, "int32"),
    "i16": (_INT, "int32"),
    "i32": (_INT, "int32"),
    "i64": (_INT, "int64"),
    "i128": (_INT, "int64"),
    "isize": (_INT, "int64"),
    "u8": (_INT, "int32"),
    "u16": (_INT, "int32"),
    "u32": (_INT, "int32"),
    "u64": (_INT, "int64"),
    "u128": (_INT, "int64"),
    "usize": (_INT, "int64"),
    "f32": (_FLOAT, "float"),
    "f64": (_FLOAT, "double"),
    "bool": (PrimitiveKind.BOOLEAN, None),
    # well-known library types serialised as strings
    "Uuid": (_TEXT, "uuid"),
    "DateTime": (_TEXT, "date-time"),
    "NaiveDateTime": (_TEXT, "date-time"),
    "NaiveDate": (_TEXT, "date"),
    "PathBuf": (_TEXT, None),
}

MAPPING_TYPES = {"HashMap", "BTreeMap", "IndexMap"}


def is_primitive(name: str) -> bool:
    return name in PRIMITIVES


def primitive(name: str) -> Primitive | None:
    entry = PRIMITIVES.get(name)
    if entry is None:
        return None
    kind, fmt = entry
    return Primitive(name=name, primitive=kind, format=fmt)
