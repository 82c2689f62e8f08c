"""
Exception classes for schema building, value marshalling and synchronization.
"""
import logging
import re
import sqlite3

import sqlalchemy as sa

logger = logging.getLogger('tablesync')

RETRYABLE_PATTERNS = [
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server has gone away',
    r'lost connection',
    r'broken pipe',
    # Timeouts
    r'timeout',
    r'timed out',
    # Network issues
    r'could not connect',
    r"can't connect",
    r'no route to host',
    r'network.*(unreachable|error)',
    # Database unavailable
    r'too many connections',
    r'database is locked',
]

_RETRYABLE_REGEX = re.compile('|'.join(RETRYABLE_PATTERNS), re.IGNORECASE)


def is_retryable_error(exc: BaseException) -> bool:
    """Check if an exception represents a transient error worth retrying.

    Syntax errors, constraint violations and type mismatches will fail again
    and are never retried.

    :param exc: The exception to check.
    :returns: True if the error is likely transient and worth retrying.
    """
    return bool(_RETRYABLE_REGEX.search(str(exc)))


class DatabaseError(Exception):
    """Base class for all tablesync errors.
    """


class SchemaDefinitionError(DatabaseError):
    """Duplicate table or column name while building a schema.
    """


class MarshalError(DatabaseError):
    """Error converting a value between native and column form.
    """


class SynchronizationError(DatabaseError):
    """Error introspecting the live schema of a table.
    """


class ExecutionError(DatabaseError):
    """Error raised by the database while running a statement.
    """


class ValidationError(DatabaseError):
    """Error in caller input.
    """


def report(exc: DatabaseError, log: logging.Logger | None = None) -> DatabaseError:
    """Send an error to the diagnostic logger and hand it back for raising.

    Usage:
        raise report(SchemaDefinitionError('duplicate table'))
    """
    (log or logger).error(f'{type(exc).__name__}: {exc}')
    return exc


DbConnectionError = (
    sa.exc.OperationalError,
    sa.exc.InterfaceError,
    sa.exc.DisconnectionError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    )

IntegrityError = (
    sa.exc.IntegrityError,
    sqlite3.IntegrityError,
    )

OperationalError = (
    sa.exc.OperationalError,
    sqlite3.OperationalError,
    )
