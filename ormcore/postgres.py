"""PostgreSQL dialect and its hstore and jsonb value types."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .dialect import (
    ColumnSpec,
    CommonDialect,
    ValueKind,
    _with_additional,
    is_byte_sequence,
    parse_field_for_dialect,
    register_dialect,
)
from .errors import OrmError

JSON_RAW_TYPE_NAME = "RawMessage"
HSTORE_TYPE_NAME = "Hstore"

_SMALL_INTS = frozenset(
    {
        ValueKind.INT,
        ValueKind.INT8,
        ValueKind.INT16,
        ValueKind.INT32,
        ValueKind.UINT,
        ValueKind.UINT8,
        ValueKind.UINT16,
        ValueKind.UINTPTR,
    }
)
_BIG_INTS = frozenset({ValueKind.INT64, ValueKind.UINT32, ValueKind.UINT64})


def _is_uuid(kind: ValueKind, type_name: str, array_length: int) -> bool:
    if kind is not ValueKind.BYTE_ARRAY or array_length != 16:
        return False
    return type_name.lower() in ("uuid", "guid")


def _is_json(kind: ValueKind, type_name: str) -> bool:
    return kind is ValueKind.BYTES and type_name == JSON_RAW_TYPE_NAME


class PostgresDialect(CommonDialect):
    """Dialect for PostgreSQL."""

    name = "postgres"

    def bind_var(self, i: int) -> str:
        return f"${i}"

    def data_type_of(self, field: ColumnSpec) -> str:
        parsed = parse_field_for_dialect(field, self)
        sql_type = parsed.sql_type
        size = parsed.size

        if sql_type == "":
            kind = parsed.kind
            if kind is ValueKind.BOOL:
                sql_type = "boolean"
            elif kind in _SMALL_INTS or kind in _BIG_INTS:
                serial, plain = ("serial", "integer") if kind in _SMALL_INTS else ("bigserial", "bigint")
                if self.field_can_auto_increment(field):
                    field.tag_set("AUTO_INCREMENT", "AUTO_INCREMENT")
                    sql_type = serial
                else:
                    sql_type = plain
            elif kind in (ValueKind.FLOAT32, ValueKind.FLOAT64):
                sql_type = "numeric"
            elif kind is ValueKind.STRING:
                # without an explicit size, text performs the same as varchar
                if field.tag_get("SIZE") is None:
                    size = 0
                sql_type = f"varchar({size})" if 0 < size < 65532 else "text"
            elif kind is ValueKind.TIME:
                sql_type = "timestamp with time zone"
            elif kind is ValueKind.MAP:
                if parsed.type_name == HSTORE_TYPE_NAME:
                    sql_type = "hstore"
            elif is_byte_sequence(kind):
                sql_type = "bytea"
                if _is_uuid(kind, parsed.type_name, parsed.array_length):
                    sql_type = "uuid"
                if _is_json(kind, parsed.type_name):
                    sql_type = "jsonb"

        if sql_type == "":
            raise TypeError(f"invalid sql type {parsed.type_name} ({parsed.kind.value}) for postgres")
        return _with_additional(sql_type, parsed.additional_type)

    def has_index(self, table_name: str, index_name: str) -> bool:
        return (
            self._query_count(
                "SELECT count(*) FROM pg_indexes WHERE tablename = $1 AND indexname = $2 "
                "AND schemaname = CURRENT_SCHEMA()",
                table_name,
                index_name,
            )
            > 0
        )

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        return (
            self._query_count(
                "SELECT count(con.conname) FROM pg_constraint con WHERE $1::regclass::oid = con.conrelid "
                "AND con.conname = $2 AND con.contype='f'",
                table_name,
                foreign_key_name,
            )
            > 0
        )

    def has_table(self, table_name: str) -> bool:
        return (
            self._query_count(
                "SELECT count(*) FROM INFORMATION_SCHEMA.tables WHERE table_name = $1 "
                "AND table_type = 'BASE TABLE' AND table_schema = CURRENT_SCHEMA()",
                table_name,
            )
            > 0
        )

    def has_column(self, table_name: str, column_name: str) -> bool:
        return (
            self._query_count(
                "SELECT count(*) FROM INFORMATION_SCHEMA.columns WHERE table_name = $1 "
                "AND column_name = $2 AND table_schema = CURRENT_SCHEMA()",
                table_name,
                column_name,
            )
            > 0
        )

    def current_database(self) -> str:
        return self._query_text("SELECT CURRENT_DATABASE()")

    def last_insert_id_output_interstitial(
        self, table_name: str, column_name: str, columns: Sequence[str]
    ) -> str:
        # the inserted key comes back through RETURNING, so no OUTPUT clause
        return super().last_insert_id_output_interstitial(table_name, column_name, columns)

    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        return f"RETURNING {table_name}.{column_name}"

    def supports_last_insert_id(self) -> bool:
        """PostgreSQL returns inserted ids through RETURNING instead."""
        return False


for _name in ("postgres", "pq-timeouts", "cloudsqlpostgres"):
    register_dialect(_name, PostgresDialect)


def _hstore_quote(text: Optional[str]) -> str:
    if text is None:
        return "NULL"
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _skip_space(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _read_hstore_token(text: str, pos: int) -> tuple[str, int, bool]:
    if text[pos] == '"':
        chars: list[str] = []
        pos += 1
        while pos < len(text):
            char = text[pos]
            if char == "\\":
                if pos + 1 >= len(text):
                    break
                chars.append(text[pos + 1])
                pos += 2
            elif char == '"':
                return "".join(chars), pos + 1, True
            else:
                chars.append(char)
                pos += 1
        raise OrmError("invalid hstore value: unterminated quoted string")
    start = pos
    while pos < len(text) and not text[pos].isspace() and text[pos] != "," and not text.startswith("=>", pos):
        pos += 1
    if pos == start:
        raise OrmError(f"invalid hstore value at position {start}")
    return text[start:pos], pos, False


def _parse_hstore(text: str) -> dict[str, Optional[str]]:
    result: dict[str, Optional[str]] = {}
    pos = _skip_space(text, 0)
    while pos < len(text):
        key, pos, _ = _read_hstore_token(text, pos)
        pos = _skip_space(text, pos)
        if not text.startswith("=>", pos):
            raise OrmError(f"invalid hstore value: expected '=>' at position {pos}")
        pos = _skip_space(text, pos + 2)
        if pos >= len(text):
            raise OrmError("invalid hstore value: missing value")
        value, pos, quoted = _read_hstore_token(text, pos)
        result[key] = None if not quoted and value.upper() == "NULL" else value
        pos = _skip_space(text, pos)
        if pos < len(text):
            if text[pos] != ",":
                raise OrmError(f"invalid hstore value: expected ',' at position {pos}")
            pos = _skip_space(text, pos + 1)
    return result


class Hstore(dict):
    """A PostgreSQL hstore: string keys mapped to strings or None."""

    def value(self) -> Optional[bytes]:
        """Encode for the database; an empty hstore is stored as NULL."""
        if not self:
            return None
        parts = (f"{_hstore_quote(key)}=>{_hstore_quote(val)}" for key, val in self.items())
        return ",".join(parts).encode("utf-8")

    @classmethod
    def scan(cls, value: Any) -> "Hstore":
        """Decode a database value into an Hstore."""
        if value is None:
            return cls()
        if isinstance(value, (bytes, bytearray, memoryview)):
            text = bytes(value).decode("utf-8")
        elif isinstance(value, str):
            text = value
        else:
            raise TypeError(f"cannot scan {type(value).__name__} into Hstore")
        return cls(_parse_hstore(text))


@dataclass(frozen=True)
class Jsonb:
    """PostgreSQL's JSONB type, holding the undecoded JSON document."""

    raw: bytes = b""

    def value(self) -> Optional[bytes]:
        """Encode for the database; an empty document is stored as NULL."""
        if not self.raw:
            return None
        return self.raw

    @classmethod
    def scan(cls, value: Any) -> "Jsonb":
        """Decode a database value, which must be bytes holding valid JSON."""
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise OrmError(f"Failed to unmarshal JSONB value:{value}")
        raw = bytes(value)
        try:
            json.loads(raw)
        except ValueError as exc:
            raise OrmError(str(exc)) from exc
        return cls(raw)