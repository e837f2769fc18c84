"""
Database package for dbimager.

Provides administrative connections and connection string helpers.
"""

from .connection_manager import (
    AdminConnectionManager,
    DatabaseConnectionError,
    parse_connection_string,
    to_odbc_connection_string
)

__all__ = [
    'AdminConnectionManager',
    'DatabaseConnectionError',
    'parse_connection_string',
    'to_odbc_connection_string'
]
