"""
Entity reflection: moving entity instances in and out of declared tables.

An entity is any object whose attributes are named by the table's column
code names. Values are marshalled with each column's declared type.

    user_id = auto_insert(cn, user, users, skip_nulls=True)
    auto_update(cn, user, users, 'user_id = :uid', Parameter('uid', user_id))
    user, raw = auto_load(cn, User, users, 'user_id = :uid', Parameter('uid', user_id))
"""
import dataclasses
import logging
import typing
from typing import Any, NamedTuple

from tablesync.exceptions import MarshalError, report
from tablesync.marshal import marshal
from tablesync.model import Column, Table
from tablesync.params import Parameter
from tablesync.query import insert, select, update
from tablesync.types import ColumnType, Direction, Executor, is_entity_reference
from tablesync.types import unwrap_annotation

logger = logging.getLogger(__name__)


class LoadResult(NamedTuple):
    """A loaded entity and the raw value of every selected column.

    `instance` is None when no row matched.
    """
    instance: Any
    data: dict[Column, Any]


def _hints(obj: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(obj)
    except (NameError, TypeError):
        return {}


def _field_hint(entity_type: type, name: str) -> Any:
    attr = getattr(entity_type, name, None)
    if isinstance(attr, property):
        return _hints(attr.fget).get('return') if attr.fget else None
    return _hints(entity_type).get(name)


def _has_field(entity: Any, entity_type: type, name: str) -> bool:
    return (hasattr(entity_type, name)
            or name in _hints(entity_type)
            or name in getattr(entity, '__dict__', {}))


def list_values(entity: Any, table: Table, skip_nulls: bool = False,
                entity_type: type | None = None) -> list[Parameter]:
    """Marshal an entity into write parameters, one per listed column.

    Columns are visited in declaration order. Unlisted columns and columns
    without a matching field are skipped; so are null values when
    `skip_nulls` is set.

    Args:
        entity: Instance to read
        table: Declared table
        skip_nulls: Leave out columns whose value is None
        entity_type: Class to look fields up on, `type(entity)` when None

    Raises
        MarshalError: a value could not be converted, or an ELEMENT value is None

    Returns
        list: Parameters keyed by database name, all with ``write=True``
    """
    entity_type = entity_type or type(entity)
    params = []
    for c in table:
        if not c.listed or not _has_field(entity, entity_type, c.code_name):
            continue
        content = getattr(entity, c.code_name, None)
        if content is None:
            if skip_nulls:
                continue
            if c.col_type is ColumnType.ELEMENT:
                raise report(MarshalError(
                    f'{entity_type.__name__}.{c.code_name} holds a null entity reference'), logger)
        value, success = marshal(content, c.col_type, Direction.SAVE)
        if not success:
            raise report(MarshalError(
                f'{entity_type.__name__}.{c.code_name} cannot be saved as {c.col_type}'), logger)
        params.append(Parameter(c.db_name, value))
    return params


def _condition_params(params: tuple[Parameter, ...]) -> list[Parameter]:
    return [dataclasses.replace(p, write=False) for p in params]


def auto_insert(cn: Executor, entity: Any, table: Table, skip_nulls: bool = False) -> int | None:
    """Insert an entity as a new row.

    An auto-increment column holding None or 0 is left out so the database
    generates the identity.

    Returns
        The generated identity
    """
    params = list_values(entity, table, skip_nulls)
    auto = table.auto_inc_column
    if auto is not None:
        params = [p for p in params if p.key != auto.db_name or (p.value is not None and p.value != 0)]
    return insert(cn, table, *params)


def auto_update(cn: Executor, entity: Any, table: Table, condition: str | None,
                *params: Parameter, skip_nulls: bool = False) -> int:
    """Write an entity's listed columns to the rows matching a condition.

    `params` satisfy placeholders in `condition` and are never written.

    Returns
        Affected row count
    """
    values = list_values(entity, table, skip_nulls)
    return update(cn, table, condition, *values, *_condition_params(params))


def auto_select(cn: Executor, table: Table, condition: str | None = None,
                *params: Parameter, limit: int | None = None) -> list[dict[str, Any]]:
    """Select the declared columns of the rows matching a condition.
    """
    return select(cn, table, condition, *_condition_params(params), keys=table.db_names,
                  limit=limit)


def _assign(instance: Any, entity_type: type, column: Column, raw: Any) -> None:
    name = column.code_name
    if not hasattr(instance, name) and name not in _hints(entity_type):
        logger.debug(f'{entity_type.__name__} has no field {name}, skipping')
        return
    target = unwrap_annotation(_field_hint(entity_type, name))
    if column.col_type is ColumnType.ELEMENT and is_entity_reference(target):
        logger.debug(f'{entity_type.__name__}.{name} references an entity, leaving identity {raw} unresolved')
        return
    value, success = marshal(raw, column.col_type, Direction.LOAD, target)
    if not success:
        logger.info(f'Unable to load {entity_type.__name__}.{name} from {raw!r} as {column.col_type}')
        return
    try:
        setattr(instance, name, value)
    except AttributeError:
        logger.debug(f'{entity_type.__name__}.{name} is not writable, skipping')


def auto_load(cn: Executor, entity_type: type, table: Table, condition: str | None = None,
              *params: Parameter) -> LoadResult:
    """Load the first row matching a condition into a new entity.

    The entity is default constructed. Every declared column's raw value is
    kept in `LoadResult.data`; a column is assigned to the entity only when
    a writable field of its code name exists and the value loads. Skipped
    columns are logged, not raised.

    Returns
        LoadResult(instance, data); LoadResult(None, {}) when no row matches
    """
    rows = auto_select(cn, table, condition, *params, limit=1)
    if not rows:
        logger.debug(f'No {table.name} row matches {condition!r}')
        return LoadResult(None, {})
    row = rows[0]
    instance = entity_type()
    data: dict[Column, Any] = {}
    for c in table:
        raw = row.get(c.db_name)
        data[c] = raw
        _assign(instance, entity_type, c, raw)
    return LoadResult(instance, data)
