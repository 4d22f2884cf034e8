"""
=========================================
SQL utilities for test database handling.
=========================================

Pure functions generating the backend-specific SQL the provisioning layer
executes. Nothing here opens a connection.

The package follows a clear organization:
    - ddl.py: CREATE/DROP DATABASE statements and the capability table
    - query_builder.py: scalar lookup queries and identity sequence naming

Example:
    >>> from sql import supports_create_drop_database, identity_sequence_name
    >>>
    >>> supports_create_drop_database('sqlite')
    False
    >>> identity_sequence_name('postgresql', 'public.users', 'id')
    'public.users_id_seq'
"""

__version__ = "0.1.0"
__all__ = [
    # DDL functions
    'supports_create_drop_database', 'quote_identifier', 'create_database_sql',
    'drop_database_sql', 'terminate_connections_sql',
    # Query builders
    'identity_sequence_name', 'last_insert_id_sql', 'current_database_sql',
    'uses_identity_sequences', 'requires_identity_sequence',
]

from .ddl import (
    create_database_sql,
    drop_database_sql,
    quote_identifier,
    supports_create_drop_database,
    terminate_connections_sql,
)
from .query_builder import (
    current_database_sql,
    identity_sequence_name,
    last_insert_id_sql,
    requires_identity_sequence,
    uses_identity_sequences,
)
