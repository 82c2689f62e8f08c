"""
Unit tests for statement parameters.
"""
import datetime

import pytest
from tablesync import ColumnType, MarshalError, Parameter, Table, ValidationError
from tablesync.params import bind_params, write_params
from tablesync.sql import bind_name

from tests.fixtures.entities import Color


def test_parameter_defaults_to_write():
    """Test that parameters are write parameters unless told otherwise"""
    assert Parameter('a', 1).write
    assert not Parameter('a', 1, write=False).write


def test_parameter_of_marshals_inferred_type():
    """Test marshalling with the value's own type"""
    instant = datetime.datetime(2012, 12, 21, 12, 12, 12, tzinfo=datetime.timezone.utc)
    assert Parameter.of('created', instant).value == 1356091932
    assert Parameter.of('color', Color.BLUE, write=False) == Parameter('color', 2, False)


def test_parameter_for_column_uses_declared_type():
    """Test marshalling with a column's declared type"""
    table = Table('users')
    c = table.add_column(ColumnType.TINYINT, 'level')
    assert Parameter.for_column(c, '12').value == 12
    with pytest.raises(MarshalError):
        Parameter.for_column(c, 1000)


def test_parameter_for_code_name():
    """Test looking a column up by code name"""
    table = Table('users')
    table.add_column(ColumnType.BOOLEAN, 'is_active', 'active')
    p = Parameter.for_code_name(table, 'active', 'true')
    assert p == Parameter('is_active', True)
    with pytest.raises(ValidationError):
        Parameter.for_code_name(table, 'missing', 1)


def test_bind_params_repeated_key():
    """Test that a key may repeat with the same value"""
    params = [Parameter('id', 1), Parameter('id', 1, write=False)]
    assert bind_params(params) == {'id': 1}


def test_bind_params_conflicting_key():
    """Test that one key bound to two values is rejected"""
    params = [Parameter('id', 1), Parameter('id', 2, write=False)]
    with pytest.raises(ValidationError, match="'id' is bound to both 1 and 2"):
        bind_params(params)


def test_bind_params_uses_bind_names():
    """Test that keys with non-word characters bind under their placeholder names"""
    bound = bind_params([Parameter('unit price', '2.5'), Parameter('qty', 3)])
    assert bound == {bind_name('unit price'): '2.5', 'qty': 3}


def test_write_params():
    """Test filtering write parameters"""
    params = [Parameter('a', 1), Parameter('b', 2, write=False), Parameter('c', 3)]
    assert [p.key for p in write_params(params)] == ['a', 'c']
