"""
===================================================
Schema teardown for backends without DROP DATABASE.
===================================================

Computes the DDL statements dropping every object in the connection's
default schema, from what the schema currently contains:

    1. views
    2. foreign keys closing dependency cycles (where ALTER is supported)
    3. tables, dependents before the tables they reference
    4. standalone sequences

Indexes, triggers and ordinary constraints go away with their tables. A
foreign key cycle on a backend without ALTER (SQLite) is left to the table
drops themselves.

Example:
    >>> from provisioning.teardown import collect_drop_statements
    >>>
    >>> statements = collect_drop_statements(conn)
    >>> for statement in statements:
    ...     conn.execute(statement)
    >>> conn.commit()
"""

import logging
from typing import Iterable, List

from sqlalchemy import MetaData, Sequence, Table, inspect, text
from sqlalchemy.engine import Connection, Dialect
from sqlalchemy.exc import CircularDependencyError
from sqlalchemy.schema import DropConstraint, DropSequence, DropTable, sort_tables_and_constraints
from sqlalchemy.sql.expression import Executable

logger = logging.getLogger(__name__)

# System-generated sequences behind Oracle 12c identity columns
ORACLE_IDENTITY_SEQUENCE_PREFIX = 'ISEQ$$'


def collect_drop_statements(connection: Connection) -> List[Executable]:
    """
    Compute the statements that empty the connection's default schema.

    Args:
        connection: Connection to the schema to wipe

    Returns:
        Executable DDL elements, in execution order
    """
    dialect = connection.dialect
    inspector = inspect(connection)

    metadata = MetaData()
    metadata.reflect(bind=connection)

    sequence_names: List[str] = []
    if dialect.supports_sequences:
        sequence_names = inspector.get_sequence_names()

    statements = drop_statements(
        dialect,
        view_names=inspector.get_view_names(),
        tables=metadata.tables.values(),
        sequence_names=sequence_names,
    )
    logger.debug(f"Computed {len(statements)} drop statements for schema teardown")
    return statements


def drop_statements(
    dialect: Dialect,
    view_names: Iterable[str],
    tables: Iterable[Table],
    sequence_names: Iterable[str]
) -> List[Executable]:
    """
    Order the drop statements for a known set of schema objects.

    Args:
        dialect: Dialect the statements are meant for
        view_names: Views to drop
        tables: Reflected tables with their foreign keys
        sequence_names: Sequences present in the schema

    Returns:
        Executable DDL elements, in execution order
    """
    preparer = dialect.identifier_preparer
    statements: List[Executable] = []

    for view_name in view_names:
        # Colons in quoted names must not turn into bind parameters
        quoted = preparer.quote(view_name).replace(':', '\\:')
        statements.append(text(f"DROP VIEW {quoted}"))

    for table, cycle_constraints in _drop_order(dialect, list(tables)):
        if table is not None:
            statements.append(DropTable(table))
            continue
        for constraint in cycle_constraints:
            if dialect.supports_alter and constraint.name is not None:
                statements.append(DropConstraint(constraint))

    # Serial sequences disappear with their table on PostgreSQL
    if_exists = dialect.name == 'postgresql'
    for sequence_name in sequence_names:
        if sequence_name.upper().startswith(ORACLE_IDENTITY_SEQUENCE_PREFIX):
            continue
        statements.append(DropSequence(Sequence(sequence_name), if_exists=if_exists))

    return statements


def _drop_order(dialect: Dialect, tables: List[Table]):
    try:
        ordered = sort_tables_and_constraints(
            tables,
            filter_fn=lambda constraint: (
                False if not dialect.supports_alter or constraint.name is None else None
            ),
        )
    except CircularDependencyError as e:
        # Unbreakable cycles: drop the tables anyway, constraints without ALTER go with them
        logger.warning(f"Foreign key cycle without droppable constraints, dropping tables unordered: {e}")
        ordered = sort_tables_and_constraints(
            tables,
            filter_fn=lambda constraint: (
                True if not dialect.supports_alter or constraint.name is None else None
            ),
        )
    return reversed(ordered)
