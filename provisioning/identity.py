"""
==============================================
Identity resolution after an insert.
==============================================

Returns the value generated for an identity (autoincrement) column by the
last insert on a connection.

Backends with a native "last insert id" (SQLite, MySQL/MariaDB, SQL Server)
ignore the sequence argument. Backends emulating autoincrement with a
sequence read the sequence's current value instead: PostgreSQL when a
sequence name is given (lastval() otherwise), Oracle always. The sequence
name is computed by the caller with sql.query_builder.identity_sequence_name
and may be schema-qualified; it is used as given, whatever the connection's
default schema.

Example:
    >>> from provisioning.identity import last_insert_id
    >>> from sql.query_builder import identity_sequence_name
    >>>
    >>> conn.exec_driver_sql("INSERT INTO app.users (name) VALUES ('a')")
    >>> sequence = identity_sequence_name(conn.dialect.name, 'app.users', 'id')
    >>> last_insert_id(conn, sequence)
    1
"""

import logging
import re
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from sql.query_builder import (
    last_insert_id_sql,
    requires_identity_sequence,
    uses_identity_sequences,
)

logger = logging.getLogger(__name__)

# Plain or schema-qualified identifier
SEQUENCE_NAME_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_$#]*(\.[A-Za-z_][A-Za-z0-9_$#]*)?$')


class IdentityResolutionError(Exception):
    """Exception raised when no generated identity value can be returned.

    Raised when nothing was inserted on the connection, the sequence does not
    exist or is missing for a backend that needs one, or the backend is not
    supported.
    """
    pass


class IdentityResolver:
    """Reads the identity value generated by the last insert."""

    def last_insert_id(self, connection: Connection, sequence_name: Optional[str] = None) -> int:
        """
        Return the identity generated by the last insert on a connection.

        Args:
            connection: Connection the insert ran on
            sequence_name: Sequence behind the identity column, possibly
                schema-qualified; ignored by backends with native
                autoincrement

        Returns:
            Generated identity value

        Raises:
            IdentityResolutionError: If no value can be resolved
        """
        dialect_name = connection.dialect.name

        if uses_identity_sequences(dialect_name):
            if sequence_name:
                self._check_sequence_name(sequence_name)
            elif requires_identity_sequence(dialect_name):
                raise IdentityResolutionError(
                    f"{dialect_name} needs the identity sequence name to resolve the last insert id"
                )
        elif sequence_name:
            logger.debug(f"{dialect_name} has native autoincrement, ignoring sequence {sequence_name}")
            sequence_name = None

        try:
            sql = last_insert_id_sql(dialect_name, sequence_name)
        except ValueError as e:
            raise IdentityResolutionError(str(e)) from e

        params = {'sequence_name': sequence_name} if ':sequence_name' in sql else {}
        try:
            value = connection.execute(text(sql), params).scalar()
        except SQLAlchemyError as e:
            logger.error(f"Error reading last insert id: {e}")
            raise IdentityResolutionError(f"Failed to read last insert id: {e}") from e

        # Native functions report 0 when the connection inserted nothing
        if value is None or value == 0:
            raise IdentityResolutionError("No identity value was generated on this connection")
        return int(value)

    @staticmethod
    def _check_sequence_name(sequence_name: str) -> None:
        if not SEQUENCE_NAME_PATTERN.match(sequence_name):
            raise IdentityResolutionError(f"Invalid sequence name: {sequence_name!r}")


_default_resolver = IdentityResolver()


def last_insert_id(connection: Connection, sequence_name: Optional[str] = None) -> int:
    """Module-level shortcut for IdentityResolver().last_insert_id()."""
    return _default_resolver.last_insert_id(connection, sequence_name)
