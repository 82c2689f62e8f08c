"""
Schema synchronization and entity round trips against in-memory SQLite.
"""
import datetime
import decimal

import numpy as np
import pandas as pd
import pytest
import tablesync as ts

from tests.fixtures.entities import Account, Address, Color, Profile, Size, User

pytestmark = pytest.mark.sqlite


@pytest.fixture
def synced(sqlite_conn, profile_structure):
    """Connection with the users and profiles tables created"""
    ts.update_structure(sqlite_conn, profile_structure, create_missing_tables=True)
    return sqlite_conn, profile_structure


def test_create_missing_tables(synced):
    """Test that created tables match their declarations"""
    cn, structure = synced
    for table in structure:
        assert cn.get_columns(table.name) == table.db_names


def test_update_structure_is_idempotent(synced):
    """Test that a second run changes nothing"""
    cn, structure = synced
    assert ts.update_structure(cn, structure, create_missing_tables=True)[1:] == []
    assert ts.update_structure(cn, structure) == []


def test_update_columns_adds_missing(sqlite_conn, users_table):
    """Test adding a declared column to an existing table"""
    ts.execute(sqlite_conn, 'CREATE TABLE users (user_id INTEGER PRIMARY KEY, user_name TEXT)')
    assert ts.update_columns(sqlite_conn, users_table) == ['ALTER TABLE users ADD `email` TEXT']
    assert sqlite_conn.get_columns('users') == ['user_id', 'user_name', 'email']
    assert ts.update_columns(sqlite_conn, users_table) == []


def test_update_columns_drops_only_when_asked(sqlite_conn, users_table):
    """Test that undeclared columns survive unless delete is set"""
    ts.execute(sqlite_conn, 'CREATE TABLE users (user_id INTEGER PRIMARY KEY, user_name TEXT, '
                            'email TEXT, legacy_col TEXT)')
    assert ts.update_columns(sqlite_conn, users_table) == []
    assert ts.column_exists(sqlite_conn, users_table, 'legacy_col')
    assert ts.update_columns(sqlite_conn, users_table, delete=True) == [
        'ALTER TABLE users DROP COLUMN `legacy_col`']
    assert not ts.column_exists(sqlite_conn, users_table, 'legacy_col')


def test_update_columns_missing_table(sqlite_conn, users_table):
    """Test that a missing table is reported"""
    with pytest.raises(ts.SynchronizationError, match='does not exist'):
        ts.update_columns(sqlite_conn, users_table)


def test_profile_round_trip(synced):
    """Test insert then load of every supported column type"""
    cn, structure = synced
    profiles = structure.get_table('profiles')
    created = datetime.datetime(2012, 12, 21, 12, 12, 12, tzinfo=datetime.timezone.utc)
    profile = Profile(nickname='ada', age=np.uint8(200), score=0.5,
                      balance=decimal.Decimal('12.50'), active=True, color=Color.BLUE,
                      size=Size.LARGE, created=created, session=datetime.timedelta(minutes=3),
                      address=Address("O'Neil St", 'Oslo'), owner=Account(7), note='hidden')
    new_id = ts.auto_insert(cn, profile, profiles)
    assert new_id == 1

    loaded, data = ts.auto_load(cn, Profile, profiles, 'id = :id', ts.Parameter('id', new_id))
    assert loaded.id == new_id
    assert loaded.nickname == 'ada'
    assert loaded.age == 200
    assert loaded.score == 0.5
    assert loaded.balance == decimal.Decimal('12.5')
    assert loaded.active is True
    assert loaded.color is Color.BLUE
    assert loaded.size is Size.LARGE
    assert loaded.created.astimezone(datetime.timezone.utc) == created
    assert loaded.session == datetime.timedelta(minutes=3)
    assert loaded.address == Address("O'Neil St", 'Oslo')
    assert loaded.owner is None
    assert data[profiles.find_c('owner')] == 7
    assert loaded.note is None


def test_auto_update_and_select(synced):
    """Test updating an entity by condition"""
    cn, structure = synced
    users = structure.get_table('users')
    user_id = ts.auto_insert(cn, User(user_name='ada'), users, skip_nulls=True)
    user = User(id=user_id, user_name='ada', email='ada@example.com')
    assert ts.auto_update(cn, user, users, 'user_id = :uid', ts.Parameter('uid', user_id)) == 1
    assert ts.auto_select(cn, users) == [{'user_id': user_id, 'user_name': 'ada',
                                          'email': 'ada@example.com'}]


def test_table_operations(synced):
    """Test count, read, update and delete"""
    cn, structure = synced
    users = structure.get_table('users')
    for name in ('ada', 'bob', 'cy'):
        ts.insert(cn, users, ts.Parameter('user_name', name))
    assert ts.count(cn, users) == 3

    df = ts.read(cn, users, 'user_name <> :name', ts.Parameter('name', 'cy', write=False))
    assert isinstance(df, pd.DataFrame)
    assert df['user_name'].tolist() == ['ada', 'bob']
    assert df.attrs['table_name'] == 'users'

    updated = ts.update(cn, users, 'user_name = :old', ts.Parameter('email', 'bob@example.com'),
                        ts.Parameter('old', 'bob', write=False))
    assert updated == 1
    row = ts.select_row_or_none(cn, users, 'user_name = :n', ts.Parameter('n', 'bob'))
    assert row['email'] == 'bob@example.com'

    assert ts.delete(cn, users, 'user_name = :n', ts.Parameter('n', 'ada')) == 1
    assert ts.count(cn, users) == 2
    assert ts.select_row_or_none(cn, users, 'user_name = :n', ts.Parameter('n', 'ada')) is None


def test_transaction_rollback(synced):
    """Test that a failed transaction leaves no rows"""
    cn, structure = synced
    users = structure.get_table('users')
    with pytest.raises(ValueError), ts.transaction(cn) as tx:
        ts.insert(tx, users, ts.Parameter('user_name', 'ada'))
        assert ts.count(tx, users) == 1
        raise ValueError('abort')
    assert not cn.in_transaction
    assert ts.count(cn, users) == 0


def test_transaction_commit(synced):
    """Test that a transaction commits its statements together"""
    cn, structure = synced
    users = structure.get_table('users')
    with ts.transaction(cn) as tx:
        ts.insert(tx, users, ts.Parameter('user_name', 'ada'))
        ts.insert(tx, users, ts.Parameter('user_name', 'bob'))
    assert ts.count(cn, users) == 2


def test_nested_transaction(sqlite_conn):
    """Test that nesting is rejected"""
    with ts.transaction(sqlite_conn):
        with pytest.raises(RuntimeError):
            ts.transaction(sqlite_conn)


def test_execution_error(sqlite_conn):
    """Test that driver errors surface as ExecutionError"""
    with pytest.raises(ts.ExecutionError):
        ts.execute(sqlite_conn, 'SELECT * FROM missing_table')
    assert ts.execute(sqlite_conn, 'CREATE TABLE ok (a INT)') is not None


def test_reserved_and_odd_column_names(sqlite_conn):
    """Test create, sync, insert, update and drop with names that need quoting"""
    structure = ts.Structure()
    orders = structure.add_table('orders')
    orders.add_column(ts.ColumnType.BIGINT, 'id', auto_inc=True)
    orders.add_column(ts.ColumnType.TEXT, 'group')
    ts.update_structure(sqlite_conn, structure, create_missing_tables=True)
    orders.add_column(ts.ColumnType.TEXT, 'unit price')
    assert ts.update_columns(sqlite_conn, orders) == ['ALTER TABLE orders ADD `unit price` TEXT']

    new_id = ts.insert(sqlite_conn, orders, ts.Parameter('group', 'a'),
                       ts.Parameter('unit price', '2.5'))
    assert ts.update(sqlite_conn, orders, '`group` = :g', ts.Parameter('unit price', '3'),
                     ts.Parameter('g', 'a', write=False)) == 1
    assert ts.select(sqlite_conn, orders) == [{'id': new_id, 'group': 'a', 'unit price': '3'}]

    ts.execute(sqlite_conn, 'ALTER TABLE orders ADD `order` TEXT')
    assert ts.update_columns(sqlite_conn, orders, delete=True) == [
        'ALTER TABLE orders DROP COLUMN `order`']


def test_select_row_or_none_reads_one_row(synced):
    """Test that only the first match is fetched"""
    cn, structure = synced
    users = structure.get_table('users')
    for name in ('ada', 'bob'):
        ts.insert(cn, users, ts.Parameter('user_name', name))
    assert len(ts.select(cn, users, limit=1)) == 1
    loaded, _ = ts.auto_load(cn, User, users)
    assert loaded.user_name == 'ada'
