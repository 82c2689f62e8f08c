"""
Statement parameters.
"""
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

from tablesync.exceptions import ValidationError, report
from tablesync.marshal import save_value
from tablesync.sql import bind_name

if TYPE_CHECKING:
    from tablesync.model import Column, Table

logger = logging.getLogger(__name__)


@dataclass
class Parameter:
    """A named, already marshalled value bound to a statement.

    Parameters with ``write=True`` feed the SET/VALUES list of UPDATE and
    INSERT statements; every parameter is bound, so ``write=False`` ones can
    satisfy placeholders in a condition:

        update(cn, users, 'user_id = :uid',
               Parameter('email', 'a@b.c'), Parameter('uid', 7, write=False))
    """
    key: str
    value: Any
    write: bool = True

    @classmethod
    def of(cls, key: str, value: Any, write: bool = True) -> Self:
        """Marshal a native value with its inferred column type.
        """
        return cls(key, save_value(value), write)

    @classmethod
    def for_column(cls, column: 'Column', value: Any, write: bool = True) -> Self:
        """Marshal a native value with the column's declared type.
        """
        return cls(column.db_name, save_value(value, column.col_type), write)

    @classmethod
    def for_code_name(cls, table: 'Table', code_name: str, value: Any,
                      write: bool = True) -> Self:
        """Look up a column by code name and marshal a value for it.
        """
        column = table.find_c(code_name)
        if column is None:
            raise report(ValidationError(f'Table {table.name!r} has no column {code_name!r}'), logger)
        return cls.for_column(column, value, write)


def bind_params(params: Iterable[Parameter]) -> dict[str, Any]:
    """Collect parameters into a bind dictionary keyed by placeholder name.

    A key may repeat only with the same value, since one placeholder
    cannot carry two values.

    Raises
        ValidationError: the same key is bound to different values
    """
    bound: dict[str, Any] = {}
    for p in params:
        name = bind_name(p.key)
        if name in bound and bound[name] != p.value:
            raise report(ValidationError(
                f'Parameter {p.key!r} is bound to both {bound[name]!r} and {p.value!r}'), logger)
        bound[name] = p.value
    return bound


def write_params(params: Iterable[Parameter]) -> list[Parameter]:
    return [p for p in params if p.write]
