"""
Unit tests for logical column types, DDL keywords and type inference.
"""
import datetime
import decimal
import enum
from typing import Annotated, Optional

import numpy as np
import pytest
from tablesync import ColumnType, Save, infer_column_type, physical_keyword
from tablesync.types import infer_value_type, is_entity_reference, unwrap_annotation

from tests.fixtures.entities import Account, Color


@pytest.mark.parametrize(('col_type', 'expected'), [
    (ColumnType.ENUM, 'BIGINT'),
    (ColumnType.DATETIME, 'BIGINT'),
    (ColumnType.TIMESPAN, 'BIGINT'),
    (ColumnType.ELEMENT, 'BIGINT'),
    (ColumnType.OBJECT, 'MEDIUMTEXT'),
    (ColumnType.BYTE, 'SMALLINT'),
    (ColumnType.USMALLINT, 'INT'),
    (ColumnType.UINT, 'BIGINT'),
    (ColumnType.UBIGINT, 'BIGINT'),
    (ColumnType.INT, 'INT'),
    (ColumnType.TINYINT, 'TINYINT'),
    (ColumnType.VARCHAR, 'VARCHAR'),
    (ColumnType.LONGTEXT, 'LONGTEXT'),
    (ColumnType.DECIMAL, 'DECIMAL'),
    (ColumnType.BOOLEAN, 'BOOLEAN'),
])
def test_physical_keyword(col_type, expected):
    """Test DDL keyword for each logical type"""
    assert physical_keyword(col_type) == expected


def test_every_type_has_a_keyword():
    """Test that no logical type is left without a keyword"""
    for col_type in ColumnType:
        assert physical_keyword(col_type)


@pytest.mark.parametrize(('native', 'expected'), [
    (np.int8, ColumnType.TINYINT),
    (np.uint8, ColumnType.BYTE),
    (np.int16, ColumnType.SMALLINT),
    (np.uint16, ColumnType.USMALLINT),
    (np.int32, ColumnType.INT),
    (np.uint32, ColumnType.UINT),
    (np.int64, ColumnType.BIGINT),
    (np.uint64, ColumnType.UBIGINT),
    (np.float32, ColumnType.FLOAT),
    (np.float64, ColumnType.DOUBLE),
    (int, ColumnType.BIGINT),
    (float, ColumnType.DOUBLE),
    (str, ColumnType.TEXT),
    (bool, ColumnType.BOOLEAN),
    (decimal.Decimal, ColumnType.DECIMAL),
    (datetime.datetime, ColumnType.DATETIME),
    (datetime.timedelta, ColumnType.TIMESPAN),
])
def test_infer_native_types(native, expected):
    """Test the native type lookup table"""
    assert infer_column_type(native) is expected


def test_infer_entity_reference_before_enum():
    """Test that entity references and enums take priority over the table"""
    assert infer_column_type(Account) is ColumnType.ELEMENT
    assert infer_column_type(Color) is ColumnType.ENUM


def test_infer_int_enum_is_enum():
    """Test that an IntEnum resolves to ENUM, not through its int base"""
    class Level(enum.IntEnum):
        LOW = 1

    assert infer_column_type(Level) is ColumnType.ENUM


def test_infer_unknown_defaults_to_int():
    """Test that unmapped types default to INT"""
    class Unknown:
        pass

    assert infer_column_type(Unknown) is ColumnType.INT
    assert infer_column_type(list) is ColumnType.INT


def test_infer_subclass_resolves_to_base():
    """Test that a subclass of a mapped type resolves through its MRO"""
    class Name(str):
        pass

    assert infer_column_type(Name) is ColumnType.TEXT


@pytest.mark.parametrize('hint', [
    Optional[str],
    str | None,
    Annotated[str, Save()],
    Annotated[str | None, Save()],
])
def test_unwrap_annotation(hint):
    """Test that Optional and Annotated wrappers are stripped"""
    assert unwrap_annotation(hint) is str
    assert infer_column_type(hint) is ColumnType.TEXT


def test_infer_value_type():
    """Test inference from values"""
    assert infer_value_type(Account(3)) is ColumnType.ELEMENT
    assert infer_value_type(True) is ColumnType.BOOLEAN
    assert infer_value_type(np.uint16(4)) is ColumnType.USMALLINT


def test_is_entity_reference():
    """Test the entity reference capability check"""
    assert is_entity_reference(Account)
    assert not is_entity_reference(int)
    assert not is_entity_reference(Account(1))


def test_type_properties():
    """Test classification helpers"""
    assert ColumnType.UINT.is_integer
    assert ColumnType.DECIMAL.is_numeric
    assert not ColumnType.DECIMAL.is_integer
    assert ColumnType.MEDIUMTEXT.is_text
    assert not ColumnType.OBJECT.is_text
    assert str(ColumnType.BIGINT) == 'BIGINT'
