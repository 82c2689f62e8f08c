import pandas as pd
import pytest
from tablesync.options import DatabaseOptions, iterdict_data_loader
from tablesync.options import pandas_data_loader


def test_init_defaults():
    """Test default initialization"""
    options = DatabaseOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='shop',
        port=3306,
        timeout=30
    )

    assert options.drivername == 'mysql'
    assert options.appname is not None
    assert options.check_connection is True
    assert options.data_loader == pandas_data_loader

    assert options.use_pool is False
    assert options.pool_max_connections == 5
    assert options.pool_max_idle_time == 300
    assert options.pool_wait_timeout == 30


def test_pooling_options():
    """Test connection pooling options"""
    options = DatabaseOptions(
        drivername='mysql',
        hostname='testhost',
        username='testuser',
        database='shop',
        use_pool=True,
        pool_max_connections=10,
        pool_max_idle_time=600,
        pool_wait_timeout=60
    )

    assert options.use_pool is True
    assert options.pool_max_connections == 10
    assert options.pool_max_idle_time == 600
    assert options.pool_wait_timeout == 60


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError, match='drivername'):
        DatabaseOptions(
            drivername='oracle',
            hostname='testhost',
            username='testuser',
            database='shop',
        )

    with pytest.raises(ValueError, match='username'):
        DatabaseOptions(drivername='mysql', hostname='testhost', database='shop')


def test_sqlite_options():
    """Test SQLite options validation"""
    options = DatabaseOptions(drivername='sqlite', database='test.db')
    assert options.drivername == 'sqlite'
    assert options.database == 'test.db'

    with pytest.raises(ValueError):
        DatabaseOptions(drivername='sqlite')


def test_custom_data_loader():
    """Test that a given data loader is kept"""
    options = DatabaseOptions(drivername='sqlite', database=':memory:',
                              data_loader=iterdict_data_loader)
    assert options.data_loader is iterdict_data_loader


def test_pandas_data_loader():
    """Test DataFrame construction and the table name attribute"""
    rows = [{'user_id': 1, 'user_name': 'ada'}, {'user_id': 2, 'user_name': 'bob'}]
    df = pandas_data_loader(rows, ['user_id', 'user_name'], table_name='users')
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ['user_id', 'user_name']
    assert df['user_name'].tolist() == ['ada', 'bob']
    assert df.attrs['table_name'] == 'users'


def test_pandas_data_loader_empty():
    """Test that empty results keep their columns"""
    df = pandas_data_loader([], ['user_id', 'user_name'])
    assert df.empty
    assert list(df.columns) == ['user_id', 'user_name']
    assert 'table_name' not in df.attrs


def test_iterdict_data_loader():
    """Test the list loader ignores extra arguments"""
    rows = [{'a': 1}]
    assert iterdict_data_loader(rows, ['a'], table_name='t') == rows
    assert iterdict_data_loader([], ['a']) == []
