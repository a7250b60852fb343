"""
Column Schema - Destination column metadata used by the coercion engine.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterator, Optional, Tuple


class SemanticType(Enum):
    """Destination value families the coercion engine knows how to parse."""
    INTEGER = "integer"
    BIG_INTEGER = "big_integer"
    SMALL_INTEGER = "small_integer"
    BYTE = "byte"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"
    FLOAT = "float"
    DATETIME = "datetime"
    GUID = "guid"
    STRING = "string"

    @property
    def is_integral(self) -> bool:
        return self in _INTEGRAL_TYPES


_INTEGRAL_TYPES = {
    SemanticType.INTEGER,
    SemanticType.BIG_INTEGER,
    SemanticType.SMALL_INTEGER,
    SemanticType.BYTE,
}

# Native type name (lower case, without length/precision) -> semantic type
NATIVE_TYPE_MAP = {
    "int": SemanticType.INTEGER,
    "integer": SemanticType.INTEGER,
    "bigint": SemanticType.BIG_INTEGER,
    "smallint": SemanticType.SMALL_INTEGER,
    "tinyint": SemanticType.BYTE,
    "bit": SemanticType.BOOLEAN,
    "decimal": SemanticType.DECIMAL,
    "numeric": SemanticType.DECIMAL,
    "money": SemanticType.DECIMAL,
    "smallmoney": SemanticType.DECIMAL,
    "float": SemanticType.FLOAT,
    "real": SemanticType.FLOAT,
    "datetime": SemanticType.DATETIME,
    "datetime2": SemanticType.DATETIME,
    "smalldatetime": SemanticType.DATETIME,
    "date": SemanticType.DATETIME,
    "time": SemanticType.DATETIME,
    "uniqueidentifier": SemanticType.GUID,
}

_TYPE_ARGS_RE = re.compile(r"\s*\(.*\)\s*$")


def map_native_type(native_type: Optional[str]) -> SemanticType:
    """
    Map a catalog type name to its semantic type.

    Matching is case-insensitive and ignores a length/precision suffix,
    so "DECIMAL(10,2)" maps like "decimal". Unknown names map to STRING.

    Args:
        native_type: Type name as reported by the catalog

    Returns:
        SemanticType for the column
    """
    if not native_type:
        return SemanticType.STRING
    base = _TYPE_ARGS_RE.sub("", native_type).strip().lower()
    return NATIVE_TYPE_MAP.get(base, SemanticType.STRING)


@dataclass(frozen=True)
class ColumnSchema:
    """Destination column: name, native type, semantic type and nullability."""
    name: str
    native_type: str
    semantic_type: SemanticType
    nullable: bool

    @classmethod
    def from_catalog(cls, name: str, native_type: str, nullable: bool) -> "ColumnSchema":
        return cls(
            name=name,
            native_type=native_type,
            semantic_type=map_native_type(native_type),
            nullable=bool(nullable),
        )


@dataclass(frozen=True)
class ResolvedSchema:
    """
    Result of resolving a destination table.

    Columns are in ordinal position order. Identity columns are only consulted
    by the SQL script writer.
    """
    schema_name: str
    table_name: str
    columns: Tuple[ColumnSchema, ...]
    identity_columns: FrozenSet[str] = field(default_factory=frozenset)

    def __iter__(self) -> Iterator:
        # Allows: columns, identity = resolver.resolve(schema, table)
        return iter((self.columns, self.identity_columns))

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)
