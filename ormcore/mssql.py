"""Microsoft SQL Server dialect and its JSON value type."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .dialect import (
    _SMALL_INTS,
    ColumnSpec,
    Dialect,
    ValueKind,
    _parse_int,
    _with_additional,
    current_database_and_table,
    is_byte_sequence,
    parse_field_for_dialect,
    register_dialect,
)
from .errors import OrmError


class MSSQLDialect(Dialect):
    """Dialect for Microsoft SQL Server."""

    name = "mssql"

    # placeholders are positional markers replaced later, independent of index
    _bind_var_template = "$$$"
    # SQL Server has no RETURNING clause; keys come back through OUTPUT
    _returning_suffix_template: Optional[str] = None

    def bind_var(self, i: int) -> str:
        return self._bind_var_template.format(index=i)

    def quote(self, key: str) -> str:
        return f"[{key}]"

    def field_can_auto_increment(self, field: ColumnSpec) -> bool:
        """Tell whether the field's column should be an identity column."""
        value = field.tag_get("AUTO_INCREMENT")
        if value is not None:
            return value != "FALSE"
        return field.is_primary_key

    def data_type_of(self, field: ColumnSpec) -> str:
        parsed = parse_field_for_dialect(field, self)
        sql_type = parsed.sql_type
        size = parsed.size

        if sql_type == "":
            kind = parsed.kind
            if kind is ValueKind.BOOL:
                sql_type = "bit"
            elif kind in _SMALL_INTS or kind in (ValueKind.INT64, ValueKind.UINT64):
                base = "int" if kind in _SMALL_INTS else "bigint"
                if self.field_can_auto_increment(field):
                    field.tag_set("AUTO_INCREMENT", "AUTO_INCREMENT")
                    sql_type = f"{base} IDENTITY(1,1)"
                else:
                    sql_type = base
            elif kind in (ValueKind.FLOAT32, ValueKind.FLOAT64):
                sql_type = "float"
            elif kind is ValueKind.STRING:
                sql_type = f"nvarchar({size})" if 0 < size < 8000 else "nvarchar(max)"
            elif kind is ValueKind.TIME:
                sql_type = "datetimeoffset"
            elif is_byte_sequence(kind):
                sql_type = f"varbinary({size})" if 0 < size < 8000 else "varbinary(max)"

        if sql_type == "":
            raise TypeError(f"invalid sql type {parsed.type_name} ({parsed.kind.value}) for mssql")
        return _with_additional(sql_type, parsed.additional_type)

    def has_index(self, table_name: str, index_name: str) -> bool:
        return (
            self._query_count(
                "SELECT count(*) FROM sys.indexes WHERE name=? AND object_id=OBJECT_ID(?)",
                index_name,
                table_name,
            )
            > 0
        )

    def remove_index(self, table_name: str, index_name: str) -> None:
        self._exec(f"DROP INDEX {index_name} ON {self.quote(table_name)}")

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        return (
            self._query_count(
                "SELECT count(*) "
                "FROM sys.foreign_keys as F inner join sys.tables as T on F.parent_object_id=T.object_id "
                "inner join information_schema.tables as I on I.TABLE_NAME = T.name "
                "WHERE F.name = ? AND T.Name = ? AND I.TABLE_CATALOG = ?;",
                foreign_key_name,
                table,
                database,
            )
            > 0
        )

    def has_table(self, table_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        return (
            self._query_count(
                "SELECT count(*) FROM INFORMATION_SCHEMA.tables WHERE table_name = ? AND table_catalog = ?",
                table,
                database,
            )
            > 0
        )

    def has_column(self, table_name: str, column_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        return (
            self._query_count(
                "SELECT count(*) FROM information_schema.columns "
                "WHERE table_catalog = ? AND table_name = ? AND column_name = ?",
                database,
                table,
                column_name,
            )
            > 0
        )

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        self._exec(f"ALTER TABLE {table_name} ALTER COLUMN {column_name} {typ}")

    def current_database(self) -> str:
        return self._query_text("SELECT DB_NAME() AS [Current Database]")

    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        sql = ""
        if offset is not None:
            parsed_offset = _parse_int(offset)
            if parsed_offset is not None and parsed_offset >= 0:
                sql += f" OFFSET {parsed_offset} ROWS"
        if limit is not None:
            parsed_limit = _parse_int(limit)
            if parsed_limit is not None and parsed_limit >= 0:
                if sql == "":
                    sql += " OFFSET 0 ROWS"
                sql += f" FETCH NEXT {parsed_limit} ROWS ONLY"
        return sql

    def select_from_dummy_table(self) -> str:
        return ""

    def last_insert_id_output_interstitial(
        self, table_name: str, column_name: str, columns: Sequence[str]
    ) -> str:
        if not columns:
            return ""
        return f"OUTPUT Inserted.{column_name}"

    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        template = self._returning_suffix_template
        if template is None:
            return ""
        return template.format(table=table_name, column=column_name)

    def default_value_str(self) -> str:
        return "DEFAULT VALUES"

    def normalize_index_and_column(self, index_name: str, column_name: str) -> tuple[str, str]:
        return index_name, column_name


register_dialect("mssql", MSSQLDialect)


@dataclass(frozen=True)
class JSON:
    """JSON stored in a character column, kept as the undecoded document."""

    raw: bytes = b""

    def value(self) -> Optional[bytes]:
        """Encode for the database; an empty document is stored as NULL."""
        if not self.raw:
            return None
        return self.raw

    @classmethod
    def scan(cls, value: Any) -> "JSON":
        """Decode a database value, which must be a string holding valid JSON."""
        if not isinstance(value, str):
            raise OrmError(f"Failed to unmarshal JSONB value (strcast):{value}")
        raw = value.encode("utf-8")
        try:
            json.loads(raw)
        except ValueError as exc:
            raise OrmError(str(exc)) from exc
        return cls(raw)