"""
Typed schema and value marshalling over a relational database.

Declare tables once, then keep the live database in line with them and move
entities in and out of rows:

    structure = Structure('shop')
    users = structure.add_table('users')
    users.add_columns_by_attributes(User)

    cn = connect(drivername='mysql', hostname='db', username='app', database='shop')
    update_structure(cn, structure, create_missing_tables=True)
    user_id = auto_insert(cn, user, users, skip_nulls=True)
"""
__version__ = '0.1.0'

from tablesync.connection import ConnectionWrapper, connect
from tablesync.exceptions import DatabaseError, DbConnectionError
from tablesync.exceptions import ExecutionError, IntegrityError, MarshalError
from tablesync.exceptions import OperationalError, SchemaDefinitionError
from tablesync.exceptions import SynchronizationError, ValidationError
from tablesync.marshal import load_value, marshal, save_value
from tablesync.model import Column, Save, Structure, Table, column
from tablesync.options import DatabaseOptions
from tablesync.params import Parameter
from tablesync.query import count, delete, execute, insert, read, select
from tablesync.query import select_row_or_none, update
from tablesync.reflect import LoadResult, auto_insert, auto_load, auto_select
from tablesync.reflect import auto_update, list_values
from tablesync.schema import ColumnDiff, add_column, column_exists
from tablesync.schema import create_tables, diff_columns, drop_column
from tablesync.schema import update_columns, update_structure
from tablesync.transaction import Transaction as transaction
from tablesync.types import ColumnType, Direction, EntityReference
from tablesync.types import infer_column_type, physical_keyword

__all__ = [
    # Connection
    'connect',
    'ConnectionWrapper',
    'DatabaseOptions',
    'transaction',
    # Types and marshalling
    'ColumnType',
    'Direction',
    'EntityReference',
    'infer_column_type',
    'physical_keyword',
    'marshal',
    'save_value',
    'load_value',
    # Schema model
    'Column',
    'Save',
    'Structure',
    'Table',
    'column',
    'Parameter',
    # Table operations
    'execute',
    'select',
    'select_row_or_none',
    'read',
    'count',
    'insert',
    'update',
    'delete',
    # Synchronization
    'ColumnDiff',
    'diff_columns',
    'column_exists',
    'add_column',
    'drop_column',
    'create_tables',
    'update_columns',
    'update_structure',
    # Entity reflection
    'LoadResult',
    'list_values',
    'auto_insert',
    'auto_update',
    'auto_select',
    'auto_load',
    # Exceptions
    'DatabaseError',
    'SchemaDefinitionError',
    'MarshalError',
    'SynchronizationError',
    'ExecutionError',
    'ValidationError',
    'DbConnectionError',
    'IntegrityError',
    'OperationalError',
]
