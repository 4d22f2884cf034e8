"""
=======================================================
Data Definition Language (DDL) for test database reset.
=======================================================

Pure functions generating the database-level statements used when a test
database is dropped and recreated, plus the capability table telling which
backends support those statements at all.

Backends without CREATE/DROP DATABASE (SQLite, Oracle) are reset by dropping
every object instead; see provisioning.teardown.

Functions:
    supports_create_drop_database: Capability check per dialect
    quote_identifier: Quote a database name for a dialect
    create_database_sql: Generate CREATE DATABASE statement
    drop_database_sql: Generate DROP DATABASE statement
    terminate_connections_sql: Terminate other sessions (PostgreSQL)

Example:
    >>> from sql.ddl import drop_database_sql, create_database_sql
    >>>
    >>> drop_database_sql('dbal_tests', dialect_name='mysql')
    'DROP DATABASE IF EXISTS `dbal_tests`'
    >>> create_database_sql('dbal_tests', dialect_name='postgresql')
    'CREATE DATABASE "dbal_tests"'
"""

from typing import Dict, Tuple

# Dialects able to create and drop whole databases
CREATE_DROP_DATABASE_DIALECTS = frozenset({'postgresql', 'mysql', 'mariadb', 'mssql'})

_IDENTIFIER_QUOTES: Dict[str, Tuple[str, str]] = {
    'mysql': ('`', '`'),
    'mariadb': ('`', '`'),
    'mssql': ('[', ']'),
}


def supports_create_drop_database(dialect_name: str) -> bool:
    """Tell whether a backend supports CREATE/DROP DATABASE.

    Args:
        dialect_name: SQLAlchemy dialect name (e.g. 'postgresql', 'sqlite')

    Returns:
        True if the database can be dropped and recreated as a whole
    """
    return dialect_name in CREATE_DROP_DATABASE_DIALECTS


def quote_identifier(name: str, dialect_name: str = 'postgresql') -> str:
    """Quote an identifier using the dialect's delimiters.

    Embedded closing delimiters are doubled.

    Example:
        >>> quote_identifier('my"db')
        '"my""db"'
    """
    opening, closing = _IDENTIFIER_QUOTES.get(dialect_name, ('"', '"'))
    return f"{opening}{name.replace(closing, closing * 2)}{closing}"


def create_database_sql(database_name: str, dialect_name: str = 'postgresql') -> str:
    """
    Generate CREATE DATABASE statement.

    Note: Database creation cannot run inside a transaction on PostgreSQL;
    the statement must be executed on an AUTOCOMMIT connection.

    Args:
        database_name: Name of the database to create
        dialect_name: SQLAlchemy dialect name

    Returns:
        SQL CREATE DATABASE statement
    """
    return f"CREATE DATABASE {quote_identifier(database_name, dialect_name)}"


def drop_database_sql(
    database_name: str,
    dialect_name: str = 'postgresql',
    if_exists: bool = True
) -> str:
    """
    Generate DROP DATABASE statement.

    Args:
        database_name: Name of the database to drop
        dialect_name: SQLAlchemy dialect name
        if_exists: Add IF EXISTS clause

    Returns:
        SQL DROP DATABASE statement
    """
    sql_parts = ["DROP DATABASE"]

    if if_exists:
        sql_parts.append("IF EXISTS")

    sql_parts.append(quote_identifier(database_name, dialect_name))

    return " ".join(sql_parts)


def terminate_connections_sql() -> str:
    """
    Generate SQL terminating every other session on a PostgreSQL database.

    The database name is bound as ``:database_name``.

    Returns:
        SQL to terminate connections
    """
    return (
        "SELECT pg_terminate_backend(pid) "
        "FROM pg_stat_activity "
        "WHERE datname = :database_name "
        "AND pid <> pg_backend_pid()"
    )
