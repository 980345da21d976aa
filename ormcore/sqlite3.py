"""SQLite dialect."""

from __future__ import annotations

from .dialect import (
    _SMALL_INTS,
    ColumnSpec,
    CommonDialect,
    ValueKind,
    _with_additional,
    is_byte_sequence,
    parse_field_for_dialect,
    register_dialect,
)

_AUTO_INCREMENT_TYPE = "integer primary key autoincrement"


class SQLite3Dialect(CommonDialect):
    """Dialect for SQLite 3 databases."""

    name = "sqlite3"

    def data_type_of(self, field: ColumnSpec) -> str:
        parsed = parse_field_for_dialect(field, self)
        sql_type = parsed.sql_type
        size = parsed.size

        if sql_type == "":
            kind = parsed.kind
            if kind is ValueKind.BOOL:
                sql_type = "bool"
            elif kind in _SMALL_INTS or kind in (ValueKind.INT64, ValueKind.UINT64):
                if self.field_can_auto_increment(field):
                    field.tag_set("AUTO_INCREMENT", "AUTO_INCREMENT")
                    sql_type = _AUTO_INCREMENT_TYPE
                else:
                    sql_type = "integer" if kind in _SMALL_INTS else "bigint"
            elif kind in (ValueKind.FLOAT32, ValueKind.FLOAT64):
                sql_type = "real"
            elif kind is ValueKind.STRING:
                sql_type = f"varchar({size})" if 0 < size < 65532 else "text"
            elif kind is ValueKind.TIME:
                sql_type = "datetime"
            elif is_byte_sequence(kind):
                sql_type = "blob"

        if sql_type == "":
            raise TypeError(f"invalid sql type {parsed.type_name} ({parsed.kind.value}) for sqlite3")
        return _with_additional(sql_type, parsed.additional_type)

    def has_index(self, table_name: str, index_name: str) -> bool:
        return (
            self._query_count(
                f"SELECT count(*) FROM sqlite_master WHERE tbl_name = ? AND sql LIKE '%INDEX {index_name} ON%'",
                table_name,
            )
            > 0
        )

    def has_table(self, table_name: str) -> bool:
        return (
            self._query_count(
                "SELECT count(*) FROM sqlite_master WHERE type='table' AND name=?",
                table_name,
            )
            > 0
        )

    def has_column(self, table_name: str, column_name: str) -> bool:
        return (
            self._query_count(
                "SELECT count(*) FROM sqlite_master WHERE tbl_name = ? "
                f"AND (sql LIKE '%\"{column_name}\" %' OR sql LIKE '%{column_name} %')",
                table_name,
            )
            > 0
        )

    def current_database(self) -> str:
        self._connection()
        try:
            row = self._query_row("PRAGMA database_list")
        except Exception:  # driver errors are module specific
            return ""
        if row is None or len(row) != 3 or row[1] is None:
            return ""
        return str(row[1])


register_dialect("sqlite3", SQLite3Dialect)