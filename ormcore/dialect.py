"""SQL dialect interface, registry and the common dialect implementation."""

from __future__ import annotations

import re
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Sequence

from .errors import OrmError

KEY_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9]+")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_GO_OCTAL = re.compile(r"([+-]?)0([0-7_]+)")


class _Cursor(Protocol):
    def execute(self, sql: str, params: Sequence[Any] = ...) -> Any: ...

    def fetchone(self) -> Optional[Sequence[Any]]: ...

    def close(self) -> Any: ...


class _Connection(Protocol):
    """The minimal database connection a dialect needs (a DB-API connection)."""

    def cursor(self) -> _Cursor: ...


class ValueKind(Enum):
    """The kind of value a model field holds."""

    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    UINTPTR = "uintptr"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "string"
    TIME = "time"
    STRUCT = "struct"
    BYTES = "bytes"
    BYTE_ARRAY = "byte_array"
    ARRAY = "array"
    SLICE = "slice"
    MAP = "map"
    INTERFACE = "interface"


@dataclass
class ColumnSpec:
    """Description of a model field as far as column type mapping needs it.

    ``data_type_hook`` lets a value type choose its own SQL type for a dialect;
    ``wrapped`` is the value a scanner struct stores, used to find its real kind.
    """

    name: str
    kind: ValueKind
    type_name: str = ""
    is_primary_key: bool = False
    tag_settings: dict[str, str] = field(default_factory=dict)
    array_length: int = 0
    data_type_hook: Optional[Callable[["Dialect"], str]] = field(default=None, repr=False)
    wrapped: Optional["ColumnSpec"] = None

    def __post_init__(self) -> None:
        self.tag_settings = {key.upper(): value for key, value in self.tag_settings.items()}

    def tag_get(self, key: str) -> Optional[str]:
        """Return the tag setting for ``key``, or None when it is not set."""
        return self.tag_settings.get(key.upper())

    def tag_set(self, key: str, value: str) -> None:
        """Set the tag setting ``key`` to ``value``."""
        self.tag_settings[key.upper()] = value

    def tag_delete(self, key: str) -> None:
        """Remove the tag setting ``key`` if present."""
        self.tag_settings.pop(key.upper(), None)


@dataclass(frozen=True)
class ParsedField:
    """A field resolved for type mapping: its effective value and column extras."""

    kind: ValueKind
    type_name: str
    array_length: int
    sql_type: str
    size: int
    additional_type: str


class Dialect(ABC):
    """Behaviour that differs between SQL databases."""

    name: str = ""

    def __init__(self, db: Optional[_Connection] = None) -> None:
        self.db = db

    def set_db(self, db: _Connection) -> None:
        """Attach the database connection used for schema inspection."""
        self.db = db

    def _connection(self) -> _Connection:
        if self.db is None:
            raise OrmError("dialect has no database connection")
        return self.db

    def _query_row(self, sql: str, *args: Any) -> Optional[Sequence[Any]]:
        cursor = self._connection().cursor()
        try:
            cursor.execute(sql, args)
            return cursor.fetchone()
        finally:
            cursor.close()

    def _exec(self, sql: str, *args: Any) -> None:
        cursor = self._connection().cursor()
        try:
            cursor.execute(sql, args)
        finally:
            cursor.close()

    def _query_count(self, sql: str, *args: Any) -> int:
        """Run a counting query; a failed query counts as zero."""
        self._connection()
        try:
            row = self._query_row(sql, *args)
        except Exception:  # driver errors are module specific
            return 0
        if not row or row[0] is None:
            return 0
        return int(row[0])

    def _query_text(self, sql: str, *args: Any) -> str:
        """Run a query for a single text value; a failed query yields ''."""
        self._connection()
        try:
            row = self._query_row(sql, *args)
        except Exception:  # driver errors are module specific
            return ""
        if not row or row[0] is None:
            return ""
        return str(row[0])

    @abstractmethod
    def bind_var(self, i: int) -> str:
        """Return the placeholder for the ``i``-th bound value."""

    @abstractmethod
    def quote(self, key: str) -> str:
        """Quote an identifier."""

    @abstractmethod
    def data_type_of(self, field: ColumnSpec) -> str:
        """Return the SQL column type for ``field``."""

    @abstractmethod
    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the index exists."""

    @abstractmethod
    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the foreign key exists."""

    @abstractmethod
    def remove_index(self, table_name: str, index_name: str) -> None:
        """Drop an index."""

    @abstractmethod
    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists."""

    @abstractmethod
    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the column exists."""

    @abstractmethod
    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        """Change a column's type."""

    @abstractmethod
    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        """Return the LIMIT/OFFSET clause for the given values."""

    @abstractmethod
    def select_from_dummy_table(self) -> str:
        """Return the FROM clause needed to select bare values."""

    @abstractmethod
    def last_insert_id_output_interstitial(
        self, table_name: str, column_name: str, columns: Sequence[str]
    ) -> str:
        """Return the clause placed before VALUES to output the inserted id."""

    @abstractmethod
    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        """Return the clause appended to an INSERT to return the inserted id."""

    @abstractmethod
    def default_value_str(self) -> str:
        """Return the clause that inserts a row of default values."""

    def build_key_name(self, kind: str, table_name: str, *args: str) -> str:
        """Build a valid foreign key or index name from a table and fields."""
        key_name = f"{kind}_{table_name}_{'_'.join(args)}"
        return KEY_NAME_PATTERN.sub("_", key_name)

    @abstractmethod
    def normalize_index_and_column(self, index_name: str, column_name: str) -> tuple[str, str]:
        """Return the index and column names as this database wants them."""

    @abstractmethod
    def current_database(self) -> str:
        """Return the name of the current database."""


_dialects: dict[str, type[Dialect]] = {}


def register_dialect(name: str, dialect_class: type[Dialect]) -> None:
    """Register ``dialect_class`` under ``name``."""
    if not (isinstance(dialect_class, type) and issubclass(dialect_class, Dialect)):
        raise TypeError(f"{dialect_class!r} is not a Dialect subclass")
    _dialects[name] = dialect_class


def get_dialect(name: str) -> Optional[type[Dialect]]:
    """Return the dialect class registered under ``name``, or None."""
    return _dialects.get(name)


def new_dialect(name: str, db: Optional[_Connection]) -> Dialect:
    """Create a fresh dialect for ``name`` bound to ``db``.

    Unknown names fall back to the common dialect with a warning.
    """
    dialect_class = _dialects.get(name)
    if dialect_class is None:
        warnings.warn(
            f"`{name}` is not officially supported, running under compatibility mode.",
            stacklevel=2,
        )
        dialect_class = CommonDialect
    dialect = dialect_class()
    dialect.set_db(db)
    return dialect


def parse_field_for_dialect(field: ColumnSpec, dialect: Dialect) -> ParsedField:
    """Resolve a field's effective value kind, explicit SQL type, size and extras."""
    data_type = field.tag_get("TYPE") or ""
    value = field

    if field.data_type_hook is not None:
        data_type = field.data_type_hook(dialect)

    if data_type == "":
        while value.kind is ValueKind.STRUCT and value.wrapped is not None:
            value = value.wrapped

    size_setting = field.tag_get("SIZE")
    if size_setting is not None:
        try:
            size = int(size_setting)
        except ValueError:
            size = 0
    else:
        size = 255

    additional = (field.tag_get("NOT NULL") or "") + " " + (field.tag_get("UNIQUE") or "")
    default = field.tag_get("DEFAULT")
    if default is not None:
        additional += " DEFAULT " + default
    comment = field.tag_get("COMMENT")
    if comment is not None:
        additional += " COMMENT " + comment

    return ParsedField(
        kind=value.kind,
        type_name=value.type_name,
        array_length=value.array_length,
        sql_type=data_type,
        size=size,
        additional_type=additional.strip(),
    )


def current_database_and_table(dialect: Dialect, table_name: str) -> tuple[str, str]:
    """Split ``db.table`` names; otherwise pair the table with the current database."""
    if "." in table_name:
        database, table = table_name.split(".", 1)
        return database, table
    return dialect.current_database(), table_name


def is_byte_sequence(kind: ValueKind) -> bool:
    """Tell whether ``kind`` is a byte slice or a byte array."""
    return kind in (ValueKind.BYTES, ValueKind.BYTE_ARRAY)


def _parse_int(value: Any) -> Optional[int]:
    """Parse an integer with base prefixes and legacy octal; None if invalid."""
    text = str(value)
    if not text or text != text.strip():
        return None
    try:
        number = int(text, 0)
    except ValueError:
        match = _GO_OCTAL.fullmatch(text)
        if match is None or match.group(2).startswith("_") or match.group(2).endswith("_"):
            return None
        try:
            number = int(match.group(1) + match.group(2), 8)
        except ValueError:
            return None
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def _with_additional(sql_type: str, additional_type: str) -> str:
    if not additional_type.strip():
        return sql_type
    return f"{sql_type} {additional_type}"


_SMALL_INTS = frozenset(
    {
        ValueKind.INT,
        ValueKind.INT8,
        ValueKind.INT16,
        ValueKind.INT32,
        ValueKind.UINT,
        ValueKind.UINT8,
        ValueKind.UINT16,
        ValueKind.UINT32,
        ValueKind.UINTPTR,
    }
)


class CommonDialect(Dialect):
    """A generic dialect used when no database-specific one is registered."""

    name = "common"

    def bind_var(self, i: int) -> str:
        return "$$$"

    def quote(self, key: str) -> str:
        return f'"{key}"'

    def field_can_auto_increment(self, field: ColumnSpec) -> bool:
        """Tell whether the field's column should auto increment."""
        value = field.tag_get("AUTO_INCREMENT")
        if value is not None:
            return value.lower() != "false"
        return field.is_primary_key

    def data_type_of(self, field: ColumnSpec) -> str:
        parsed = parse_field_for_dialect(field, self)
        sql_type = parsed.sql_type
        size = parsed.size

        if sql_type == "":
            kind = parsed.kind
            if kind is ValueKind.BOOL:
                sql_type = "BOOLEAN"
            elif kind in _SMALL_INTS:
                sql_type = "INTEGER AUTO_INCREMENT" if self.field_can_auto_increment(field) else "INTEGER"
            elif kind in (ValueKind.INT64, ValueKind.UINT64):
                sql_type = "BIGINT AUTO_INCREMENT" if self.field_can_auto_increment(field) else "BIGINT"
            elif kind in (ValueKind.FLOAT32, ValueKind.FLOAT64):
                sql_type = "FLOAT"
            elif kind is ValueKind.STRING:
                sql_type = f"VARCHAR({size})" if 0 < size < 65532 else "VARCHAR(65532)"
            elif kind is ValueKind.TIME:
                sql_type = "TIMESTAMP"
            elif kind is ValueKind.BYTES:
                sql_type = f"BINARY({size})" if 0 < size < 65532 else "BINARY(65532)"

        if sql_type == "":
            raise TypeError(
                f"invalid sql type {parsed.type_name} ({parsed.kind.value}) for commonDialect"
            )
        return _with_additional(sql_type, parsed.additional_type)

    def has_index(self, table_name: str, index_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        return (
            self._query_count(
                "SELECT count(*) FROM INFORMATION_SCHEMA.STATISTICS "
                "WHERE table_schema = ? AND table_name = ? AND index_name = ?",
                database,
                table,
                index_name,
            )
            > 0
        )

    def remove_index(self, table_name: str, index_name: str) -> None:
        self._exec(f"DROP INDEX {index_name}")

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        return False

    def has_table(self, table_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        return (
            self._query_count(
                "SELECT count(*) FROM INFORMATION_SCHEMA.TABLES WHERE table_schema = ? AND table_name = ?",
                database,
                table,
            )
            > 0
        )

    def has_column(self, table_name: str, column_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        return (
            self._query_count(
                "SELECT count(*) FROM INFORMATION_SCHEMA.COLUMNS "
                "WHERE table_schema = ? AND table_name = ? AND column_name = ?",
                database,
                table,
                column_name,
            )
            > 0
        )

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        self._exec(f"ALTER TABLE {table_name} ALTER COLUMN {column_name} TYPE {typ}")

    def current_database(self) -> str:
        return self._query_text("SELECT DATABASE()")

    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        sql = ""
        if limit is not None:
            parsed_limit = _parse_int(limit)
            if parsed_limit is not None and parsed_limit >= 0:
                sql += f" LIMIT {parsed_limit}"
        if offset is not None:
            parsed_offset = _parse_int(offset)
            if parsed_offset is not None and parsed_offset >= 0:
                sql += f" OFFSET {parsed_offset}"
        return sql

    def select_from_dummy_table(self) -> str:
        return ""

    def last_insert_id_output_interstitial(
        self, table_name: str, column_name: str, columns: Sequence[str]
    ) -> str:
        return ""

    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        return ""

    def default_value_str(self) -> str:
        return "DEFAULT VALUES"

    def normalize_index_and_column(self, index_name: str, column_name: str) -> tuple[str, str]:
        return index_name, column_name


register_dialect("common", CommonDialect)