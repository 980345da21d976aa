import sqlite3

import pytest

from ormcore.dialect import ColumnSpec, ValueKind, get_dialect, new_dialect
from ormcore.errors import OrmError
from ormcore.sqlite3 import SQLite3Dialect


@pytest.fixture
def conn():
    connection = sqlite3.connect(":memory:")
    connection.execute("CREATE TABLE users (id integer primary key, name text)")
    connection.execute("CREATE INDEX idx_users_name ON users (name)")
    connection.commit()
    yield connection
    connection.close()


@pytest.fixture
def dialect(conn):
    return SQLite3Dialect(conn)


def test_registered_under_sqlite3():
    assert get_dialect("sqlite3") is SQLite3Dialect
    assert isinstance(new_dialect("sqlite3", None), SQLite3Dialect)


def test_primary_key_integer_autoincrements():
    field = ColumnSpec(name="Id", kind=ValueKind.INT, is_primary_key=True)
    assert SQLite3Dialect().data_type_of(field) == "integer primary key autoincrement"
    assert field.tag_get("AUTO_INCREMENT") == "AUTO_INCREMENT"


def test_int64_primary_key_autoincrements():
    field = ColumnSpec(name="Id", kind=ValueKind.INT64, is_primary_key=True)
    assert SQLite3Dialect().data_type_of(field) == "integer primary key autoincrement"


def test_plain_integers():
    d = SQLite3Dialect()
    assert d.data_type_of(ColumnSpec(name="Age", kind=ValueKind.UINT32)) == "integer"
    assert d.data_type_of(ColumnSpec(name="Big", kind=ValueKind.INT64)) == "bigint"


def test_auto_increment_disabled_by_tag():
    field = ColumnSpec(name="Id", kind=ValueKind.INT, is_primary_key=True, tag_settings={"AUTO_INCREMENT": "false"})
    assert SQLite3Dialect().data_type_of(field) == "integer"


@pytest.mark.parametrize(
    "kind, expected",
    [
        (ValueKind.BOOL, "bool"),
        (ValueKind.FLOAT64, "real"),
        (ValueKind.TIME, "datetime"),
        (ValueKind.BYTES, "blob"),
        (ValueKind.BYTE_ARRAY, "blob"),
    ],
)
def test_simple_kinds(kind, expected):
    assert SQLite3Dialect().data_type_of(ColumnSpec(name="F", kind=kind)) == expected


def test_string_size():
    d = SQLite3Dialect()
    assert d.data_type_of(ColumnSpec(name="S", kind=ValueKind.STRING, tag_settings={"SIZE": "64"})) == "varchar(64)"
    assert d.data_type_of(ColumnSpec(name="S", kind=ValueKind.STRING, tag_settings={"SIZE": "70000"})) == "text"


def test_explicit_type_and_extras():
    field = ColumnSpec(name="S", kind=ValueKind.STRING, tag_settings={"TYPE": "citext", "NOT NULL": "NOT NULL"})
    result = SQLite3Dialect().data_type_of(field)
    assert result.startswith("citext")
    assert result.endswith("NOT NULL")


def test_unsupported_kind_raises():
    with pytest.raises(TypeError):
        SQLite3Dialect().data_type_of(ColumnSpec(name="M", kind=ValueKind.MAP))


def test_has_table(dialect):
    assert dialect.has_table("users") is True
    assert dialect.has_table("orders") is False


def test_has_column(dialect):
    assert dialect.has_column("users", "name") is True
    assert dialect.has_column("users", "email") is False


def test_has_index(dialect):
    assert dialect.has_index("users", "idx_users_name") is True
    assert dialect.has_index("users", "idx_missing") is False


def test_current_database(dialect):
    assert dialect.current_database() == "main"


def test_without_connection_raises():
    with pytest.raises(OrmError):
        SQLite3Dialect().has_table("users")