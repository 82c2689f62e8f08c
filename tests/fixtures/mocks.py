"""
Recording fake for the execution and introspection collaborator.

Records every statement with its bound parameters and applies simple
ALTER TABLE ... ADD/DROP statements to its table of live columns, so
synchronizer runs can be replayed without a database.

Usage:
    def test_sync(recording_connection):
        cn = recording_connection(columns={'users': ['id', 'user_name']})
        update_columns(cn, users)
        assert cn.sql == ['ALTER TABLE users ADD `email` TEXT']
"""
import re

import pytest
from tablesync.exceptions import ExecutionError

_ALTER = re.compile(r'ALTER TABLE (?P<table>\S+) (?P<op>ADD|DROP(?: COLUMN)?) (?P<column>`(?:[^`]|``)+`|\w+)')


def _bare_table(name):
    return name.split('.')[-1].strip('`')


def _bare_column(name):
    return name[1:-1].replace('``', '`') if name.startswith('`') else name


class RecordingConnection:
    """Executor fake that records statements instead of running them.
    """

    def __init__(self, dialect='mysql', database='shop', columns=None, rows=None,
                 scalar=None, fail_introspection=False):
        self.dialect = dialect
        self.database = database
        self.columns = {k: list(v) for k, v in (columns or {}).items()}
        self.rows = list(rows or [])
        self.scalar = scalar
        self.fail_introspection = fail_introspection
        self.statements = []
        self.introspections = []

    @property
    def sql(self):
        return [sql for sql, _ in self.statements]

    def _record(self, sql, params):
        self.statements.append((sql, dict(params or {})))

    def _apply_ddl(self, sql):
        for match in _ALTER.finditer(sql):
            live = self.columns.setdefault(_bare_table(match['table']), [])
            column = _bare_column(match['column'])
            if match['op'] == 'ADD':
                live.append(column)
            elif column in live:
                live.remove(column)

    def execute(self, sql, params=None):
        self._record(sql, params)
        self._apply_ddl(sql)
        return 1

    def select(self, sql, params=None):
        self._record(sql, params)
        return list(self.rows)

    def select_row_or_none(self, sql, params=None):
        rows = self.select(sql, params)
        return rows[0] if rows else None

    def select_scalar(self, sql, params=None):
        self._record(sql, params)
        return self.scalar

    def read(self, sql, params=None, **kwargs):
        return self.select(sql, params)

    def get_columns(self, table, database=None):
        self.introspections.append((table, database))
        if self.fail_introspection:
            raise ExecutionError('Access denied for information_schema')
        return list(self.columns.get(table, []))


@pytest.fixture
def recording_connection():
    """
    Fixture that provides a factory for recording connections.

    Returns
        Factory function accepting the RecordingConnection arguments
    """
    def factory(**kwargs):
        return RecordingConnection(**kwargs)

    return factory
