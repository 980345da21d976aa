# ormcore

Building blocks for an object-relational mapper. None of them depends on a
particular database driver.

- `ormcore.callbacks` provides `Callback`, which keeps ordered chains of named
  callbacks for create, update, delete, query and row-query operations. You
  reach a chain through a `CallbackProcessor`. It places a new callback with
  `before()` and `after()`, and it can `register()`, `replace()`, `remove()`
  and `get()` callbacks by name. `sort_processors()` does the ordering.
- `ormcore.errors` provides `OrmError` and its subclasses
  `RecordNotFoundError`, `InvalidSQLError`, `InvalidTransactionError`,
  `CantStartTransactionError` and `UnaddressableError`. It also provides
  `Errors`, which gathers several distinct errors into one error, and
  `is_record_not_found_error()`.
- `ormcore.dialect` provides the abstract `Dialect`, the generic
  `CommonDialect`, the dialect registry (`register_dialect`, `get_dialect`,
  `new_dialect`) and the field description types `ColumnSpec`, `ValueKind` and
  `ParsedField`.
- `ormcore.mysql`, `ormcore.postgres`, `ormcore.sqlite3` and `ormcore.mssql`
  provide `MySQLDialect`, `PostgresDialect`, `SQLite3Dialect` and
  `MSSQLDialect`.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## Ordering callbacks

```python
from ormcore.callbacks import Callback

chain = Callback()
chain.create().register("before_create", lambda scope: ...)
chain.create().register("create", lambda scope: ...)
chain.create().before("create").register("validate", lambda scope: ...)

chain.creates                      # the sorted callables for "create"
create = chain.create().get("create")
```

A callback placed with `before(name)` or `after(name)` keeps its position
relative to `name`, even when `name` is registered later. `replace()` swaps in
a new function and leaves its position unchanged. `remove()` takes the
callback out of the chain, and `get()` then returns `None` for it. A row-query
callback registered without `before()` or `after()` is placed before
`"orm:row_query"`. `clone(logger)` returns an independent copy. If a logger is
given, it receives registration messages through its `info()` method and
duplicate-name warnings through its `warning()` method.

## Collecting errors

```python
from ormcore.errors import Errors, RecordNotFoundError, is_record_not_found_error

errs = Errors([ValueError("First"), ValueError("Second")])
errs = errs.add(ValueError("Third"), errs)
str(errs)                                                   # "First; Second; Third"
is_record_not_found_error(Errors([RecordNotFoundError()]))  # True
```

`add()` returns a new collection. It skips `None`, flattens nested `Errors`
and leaves out any error object that is already present.

## Dialects

A dialect module registers its dialect when it is imported. Import the module
first, then look the dialect up by name and pass it a DB-API style connection
(an object with `cursor()`):

```python
import ormcore.postgres
from ormcore.dialect import ColumnSpec, ValueKind, new_dialect

dialect = new_dialect("postgres", connection)
dialect.quote("users")              # '"users"'
dialect.bind_var(1)                 # '$1'
dialect.limit_and_offset_sql(10, 5) # ' LIMIT 10 OFFSET 5'

column = ColumnSpec(name="ID", kind=ValueKind.INT, is_primary_key=True)
dialect.data_type_of(column)        # 'serial'
```

These are the registered names:

| name | dialect |
| --- | --- |
| `common` | `CommonDialect` |
| `mysql` | `MySQLDialect` |
| `postgres`, `pq-timeouts`, `cloudsqlpostgres` | `PostgresDialect` |
| `sqlite3` | `SQLite3Dialect` |
| `mssql` | `MSSQLDialect` |

If `new_dialect()` gets a name that has not been registered, it issues a
warning and falls back to `CommonDialect`.

`data_type_of()` raises `TypeError` if a field has no SQL type in that
dialect. Tag settings such as `SIZE`, `TYPE`, `NOT NULL`, `UNIQUE`, `DEFAULT`,
`COMMENT`, `AUTO_INCREMENT` and `PRECISION` are read from
`ColumnSpec.tag_settings`.

The schema checks (`has_table`, `has_column`, `has_index`, `has_foreign_key`)
and `current_database()` run queries on the connection. They raise `OrmError`
if no connection is set.

### Value types

- `ormcore.postgres.Hstore`: a `dict` of strings to strings or `None`.
- `ormcore.postgres.Jsonb`: raw JSON held as bytes.
- `ormcore.mssql.JSON`: raw JSON read from a string column.

Each type converts itself to a driver value with `value()`, which returns
`None` when the value is empty. The class method `scan()` builds an instance
from a database value.

## What this package does not do

The package has no query builder, no model mapping, no sessions and no
transaction handling. It ships no predefined create, update, delete or query
callbacks. It does not open database connections, and it does not bundle any
driver.