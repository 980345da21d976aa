import pytest

from ormcore.dialect import ColumnSpec, ValueKind, get_dialect, new_dialect
from ormcore.errors import OrmError
from ormcore.mssql import JSON, MSSQLDialect


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, params=()):
        self.conn.calls.append((sql, tuple(params)))
        if self.conn.error is not None:
            raise self.conn.error

    def fetchone(self):
        if self.conn.responses:
            return self.conn.responses.pop(0)
        return None

    def close(self):
        pass


class FakeConnection:
    def __init__(self, responses=(), error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []

    def cursor(self):
        return FakeCursor(self)


def test_registered_under_mssql():
    assert get_dialect("mssql") is MSSQLDialect
    conn = FakeConnection()
    dialect = new_dialect("mssql", conn)
    assert isinstance(dialect, MSSQLDialect)
    assert dialect.db is conn


def test_bind_var_and_quote():
    d = MSSQLDialect()
    assert d.bind_var(3) == "$$$"
    quoted = d.quote("users")
    assert quoted[0] == "[" and quoted[-1] == "]" and quoted[1:-1] == "users"


def test_identity_columns():
    d = MSSQLDialect()
    assert d.data_type_of(ColumnSpec(name="Id", kind=ValueKind.INT, is_primary_key=True)) == "int IDENTITY(1,1)"
    field = ColumnSpec(name="Id", kind=ValueKind.UINT64, is_primary_key=True)
    assert d.data_type_of(field) == "bigint IDENTITY(1,1)"
    assert field.tag_get("AUTO_INCREMENT") == "AUTO_INCREMENT"


def test_auto_increment_tag_is_case_sensitive():
    d = MSSQLDialect()
    lower = ColumnSpec(name="Id", kind=ValueKind.INT, tag_settings={"AUTO_INCREMENT": "false"})
    upper = ColumnSpec(name="Id", kind=ValueKind.INT, tag_settings={"AUTO_INCREMENT": "FALSE"})
    assert d.field_can_auto_increment(lower) is True
    assert d.field_can_auto_increment(upper) is False
    assert d.data_type_of(upper) == "int"


@pytest.mark.parametrize(
    "kind, expected",
    [
        (ValueKind.BOOL, "bit"),
        (ValueKind.INT64, "bigint"),
        (ValueKind.FLOAT32, "float"),
        (ValueKind.TIME, "datetimeoffset"),
    ],
)
def test_simple_kinds(kind, expected):
    assert MSSQLDialect().data_type_of(ColumnSpec(name="F", kind=kind)) == expected


def test_large_sizes_use_max():
    d = MSSQLDialect()
    assert d.data_type_of(ColumnSpec(name="S", kind=ValueKind.STRING, tag_settings={"SIZE": "8000"})) == "nvarchar(max)"
    assert d.data_type_of(ColumnSpec(name="B", kind=ValueKind.BYTES, tag_settings={"SIZE": "0"})) == "varbinary(max)"


def test_default_string_size():
    assert MSSQLDialect().data_type_of(ColumnSpec(name="S", kind=ValueKind.STRING)) == "nvarchar(255)"


def test_unsupported_kind_raises():
    with pytest.raises(TypeError):
        MSSQLDialect().data_type_of(ColumnSpec(name="M", kind=ValueKind.MAP))


def test_limit_and_offset():
    d = MSSQLDialect()
    assert d.limit_and_offset_sql(10, None) == " OFFSET 0 ROWS FETCH NEXT 10 ROWS ONLY"
    assert d.limit_and_offset_sql(None, None) == ""
    assert d.limit_and_offset_sql("abc", -1) == ""
    with_offset = d.limit_and_offset_sql(10, 5)
    assert with_offset.startswith(d.limit_and_offset_sql(None, 5))
    assert with_offset.endswith(d.limit_and_offset_sql(10, None).split(" ROWS", 1)[1])


def test_insert_clauses():
    d = MSSQLDialect()
    assert d.last_insert_id_output_interstitial("users", "id", []) == ""
    assert d.last_insert_id_output_interstitial("users", "id", ["name"]).endswith("Inserted.id")
    assert d.last_insert_id_returning_suffix("users", "id") == ""
    assert d.default_value_str() == "DEFAULT VALUES"
    assert d.select_from_dummy_table() == ""
    assert d.normalize_index_and_column("idx(10)", "name") == ("idx(10)", "name")


def test_has_table_with_database_prefix():
    conn = FakeConnection(responses=[(1,)])
    assert MSSQLDialect(conn).has_table("shop.items") is True
    assert conn.calls[-1][1] == ("items", "shop")


def test_has_table_uses_current_database():
    conn = FakeConnection(responses=[("sales",), (0,)])
    assert MSSQLDialect(conn).has_table("items") is False
    assert conn.calls[-1][1] == ("items", "sales")


def test_has_column_and_foreign_key_arguments():
    conn = FakeConnection(responses=[(2,), (1,)])
    d = MSSQLDialect(conn)
    assert d.has_column("shop.items", "price") is True
    assert conn.calls[-1][1] == ("shop", "items", "price")
    assert d.has_foreign_key("shop.items", "fk_owner") is True
    assert conn.calls[-1][1] == ("fk_owner", "items", "shop")


def test_has_index_arguments():
    conn = FakeConnection(responses=[(1,)])
    assert MSSQLDialect(conn).has_index("items", "idx_price") is True
    assert conn.calls[-1][1] == ("idx_price", "items")


def test_query_error_counts_as_missing():
    conn = FakeConnection(error=RuntimeError("boom"))
    assert MSSQLDialect(conn).has_index("items", "idx") is False


def test_current_database():
    conn = FakeConnection(responses=[("sales",)])
    assert MSSQLDialect(conn).current_database() == "sales"


def test_remove_index_and_modify_column():
    conn = FakeConnection()
    d = MSSQLDialect(conn)
    d.remove_index("items", "idx_price")
    sql = conn.calls[-1][0]
    assert sql.startswith("DROP INDEX idx_price")
    assert sql.endswith(d.quote("items"))
    d.modify_column("items", "price", "float")
    assert conn.calls[-1][0].endswith("price float")


def test_without_connection_raises():
    with pytest.raises(OrmError):
        MSSQLDialect().current_database()


def test_json_round_trip():
    doc = '{"a": [1, 2]}'
    value = JSON.scan(doc)
    assert value.raw == doc.encode("utf-8")
    assert value.value() == doc.encode("utf-8")


def test_json_empty_value_is_null():
    assert JSON().value() is None


def test_json_scan_requires_string():
    with pytest.raises(OrmError):
        JSON.scan(b'{"a": 1}')


def test_json_scan_rejects_invalid_json():
    with pytest.raises(OrmError):
        JSON.scan("{not json")