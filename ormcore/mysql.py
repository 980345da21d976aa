"""MySQL dialect."""

from __future__ import annotations

import hashlib
import re
from typing import Any

from .dialect import (
    KEY_NAME_PATTERN,
    ColumnSpec,
    CommonDialect,
    ValueKind,
    _parse_int,
    _with_additional,
    current_database_and_table,
    is_byte_sequence,
    parse_field_for_dialect,
    register_dialect,
)

_INDEX_PREFIX_PATTERN = re.compile(r"^(.+)\((\d+)\)$")

_MAX_KEY_NAME_LENGTH = 64
_KEY_NAME_PREFIX_LENGTH = 24

_INTEGER_TYPES = {
    ValueKind.INT8: "tinyint",
    ValueKind.INT: "int",
    ValueKind.INT16: "int",
    ValueKind.INT32: "int",
    ValueKind.UINT8: "tinyint unsigned",
    ValueKind.UINT: "int unsigned",
    ValueKind.UINT16: "int unsigned",
    ValueKind.UINT32: "int unsigned",
    ValueKind.UINTPTR: "int unsigned",
    ValueKind.INT64: "bigint",
    ValueKind.UINT64: "bigint unsigned",
}


class MySQLDialect(CommonDialect):
    """Dialect for MySQL and compatible servers."""

    name = "mysql"

    def quote(self, key: str) -> str:
        return f"`{key}`"

    def data_type_of(self, field: ColumnSpec) -> str:
        parsed = parse_field_for_dialect(field, self)
        sql_type = parsed.sql_type
        size = parsed.size

        # MySQL allows only one auto increment column per table, and it must be a key.
        if field.tag_get("AUTO_INCREMENT") is not None:
            if field.tag_get("INDEX") is None and not field.is_primary_key:
                field.tag_delete("AUTO_INCREMENT")

        if sql_type == "":
            kind = parsed.kind
            if kind is ValueKind.BOOL:
                sql_type = "boolean"
            elif kind in _INTEGER_TYPES:
                base = _INTEGER_TYPES[kind]
                if self.field_can_auto_increment(field):
                    field.tag_set("AUTO_INCREMENT", "AUTO_INCREMENT")
                    sql_type = f"{base} AUTO_INCREMENT"
                else:
                    sql_type = base
            elif kind in (ValueKind.FLOAT32, ValueKind.FLOAT64):
                sql_type = "double"
            elif kind is ValueKind.STRING:
                sql_type = f"varchar({size})" if 0 < size < 65532 else "longtext"
            elif kind is ValueKind.TIME:
                precision = field.tag_get("PRECISION")
                suffix = f"({precision})" if precision is not None else ""
                if field.tag_get("NOT NULL") is not None or field.is_primary_key:
                    sql_type = f"DATETIME{suffix}"
                else:
                    sql_type = f"DATETIME{suffix} NULL"
            elif is_byte_sequence(kind):
                sql_type = f"varbinary({size})" if 0 < size < 65532 else "longblob"

        if sql_type == "":
            raise TypeError(
                f"invalid sql type {parsed.type_name} ({parsed.kind.value}) "
                f"in field {field.name} for mysql"
            )
        return _with_additional(sql_type, parsed.additional_type)

    def remove_index(self, table_name: str, index_name: str) -> None:
        self._exec(f"DROP INDEX {index_name} ON {self.quote(table_name)}")

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        self._exec(f"ALTER TABLE {table_name} MODIFY COLUMN {column_name} {typ}")

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

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        return (
            self._query_count(
                "SELECT count(*) FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS WHERE CONSTRAINT_SCHEMA=? "
                "AND TABLE_NAME=? AND CONSTRAINT_NAME=? AND CONSTRAINT_TYPE='FOREIGN KEY'",
                database,
                table,
                foreign_key_name,
            )
            > 0
        )

    def has_table(self, table_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        # quoting the database allows names containing '-'
        row = self._query_row(
            f"SHOW TABLES FROM `{database}` WHERE `Tables_in_{database}` = ?", table
        )
        return row is not None

    def has_index(self, table_name: str, index_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        row = self._query_row(
            f"SHOW INDEXES FROM `{table}` FROM `{database}` WHERE Key_name = ?", index_name
        )
        return row is not None

    def has_column(self, table_name: str, column_name: str) -> bool:
        database, table = current_database_and_table(self, table_name)
        row = self._query_row(
            f"SHOW COLUMNS FROM `{table}` FROM `{database}` WHERE Field = ?", column_name
        )
        return row is not None

    def current_database(self) -> str:
        return self._query_text("SELECT DATABASE()")

    def select_from_dummy_table(self) -> str:
        return "FROM DUAL"

    def build_key_name(self, kind: str, table_name: str, *args: str) -> str:
        key_name = super().build_key_name(kind, table_name, *args)
        if len(key_name) <= _MAX_KEY_NAME_LENGTH:
            return key_name
        digest = hashlib.sha1(key_name.encode("utf-8")).hexdigest()
        prefix = KEY_NAME_PATTERN.sub("_", args[0])[:_KEY_NAME_PREFIX_LENGTH]
        return f"{prefix}{digest}"

    def normalize_index_and_column(self, index_name: str, column_name: str) -> tuple[str, str]:
        match = _INDEX_PREFIX_PATTERN.match(index_name)
        if match is None:
            return index_name, column_name
        return match.group(1), f"{column_name}({match.group(2)})"

    def default_value_str(self) -> str:
        return "VALUES()"


register_dialect("mysql", MySQLDialect)