"""Callback chains, error collections and SQL dialects for an object-relational mapper."""

__version__ = "0.1.0"
__all__ = ["callbacks", "dialect", "errors", "mssql", "mysql", "postgres", "sqlite3"]