"""
Declarative schema model: structures, tables and columns.

A schema is built once at startup, then only read:

    structure = Structure('shop')
    users = structure.add_table('users')
    users.add_column(ColumnType.BIGINT, 'user_id', 'id', auto_inc=True)
    users.add_column(ColumnType.TEXT, 'user_name')

or bound from an annotated entity class:

    @dataclass
    class User:
        id: int = column(0, db_name='user_id', auto_inc=True)
        user_name: str | None = column(None)

    users.add_columns_by_attributes(User)
"""
import dataclasses
import inspect
import logging
import typing
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from tablesync.exceptions import SchemaDefinitionError, report
from tablesync.types import ColumnType, infer_column_type

logger = logging.getLogger(__name__)

METADATA_KEY = 'tablesync'


@dataclass(frozen=True)
class Save:
    """Per-field column declaration, read once when a table is bound.

    Attach to a dataclass field through `column()`, or to a plain class
    annotation with `typing.Annotated[int, Save(...)]`.
    """
    db_name: str | None = None
    col_type: ColumnType | None = None
    auto_inc: bool = False
    listed: bool = True


def column(default: Any = dataclasses.MISSING, *, db_name: str | None = None,
           col_type: ColumnType | None = None, auto_inc: bool = False,
           listed: bool = True, **kwargs: Any) -> Any:
    """Declare a dataclass field that is saved as a table column.

    Remaining keyword arguments are passed to `dataclasses.field`.
    """
    meta = dict(kwargs.pop('metadata', None) or {})
    meta[METADATA_KEY] = Save(db_name=db_name, col_type=col_type,
                              auto_inc=auto_inc, listed=listed)
    return dataclasses.field(default=default, metadata=meta, **kwargs)


@dataclass(eq=False)
class Column:
    """A single table column.

    `code_name` names the attribute on the entity, `db_name` the physical
    column. Columns compare by identity so they can key a dict.
    """
    col_type: ColumnType
    db_name: str
    code_name: str
    auto_inc: bool = False
    listed: bool = True

    def __hash__(self) -> int:
        return id(self)


def _own_annotations(klass: type) -> dict[str, Any]:
    return inspect.get_annotations(klass)


def _settable(klass: type, name: str) -> bool:
    attr = getattr(klass, name, None)
    if isinstance(attr, property):
        return attr.fset is not None
    return True


def _entity_fields(entity_type: type, inherit: bool = True) -> Iterator[tuple[str, Any, Save | None]]:
    """Yield (name, type hint, Save metadata) for each settable entity field.

    Dataclass fields carry Save metadata through `column()`; plain classes
    through `Annotated`. With `inherit=False`, only fields declared on
    `entity_type` itself are yielded.
    """
    hints = typing.get_type_hints(entity_type, include_extras=True)
    own = _own_annotations(entity_type)
    if dataclasses.is_dataclass(entity_type):
        candidates = [(f.name, f.metadata.get(METADATA_KEY)) for f in dataclasses.fields(entity_type)]
    else:
        candidates = [(name, None) for name in hints]
    for name, save in candidates:
        if not inherit and name not in own:
            continue
        hint = hints.get(name, Any)
        if typing.get_origin(hint) is typing.ClassVar or not _settable(entity_type, name):
            continue
        if save is None and typing.get_origin(hint) is typing.Annotated:
            save = next((a for a in typing.get_args(hint)[1:] if isinstance(a, Save)), None)
        yield name, hint, save


class Table:
    """A table and its ordered columns.

    Neither two `code_name`s nor two `db_name`s may repeat within a table.
    """

    def __init__(self, name: str, *columns: Column, db_name: str | None = None) -> None:
        self.name = name
        self.db_name = db_name or None
        self.columns: list[Column] = []
        for c in columns:
            self.add_column(c)

    def __repr__(self) -> str:
        return f'Table({self.name!r}, columns={[c.db_name for c in self.columns]!r})'

    def __str__(self) -> str:
        return self.qualified_name()

    def __iter__(self) -> Iterator[Column]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def qualified_name(self, quote: str = '`') -> str:
        """Physical table name, prefixed by the quoted database name when set.
        """
        if not self.db_name:
            return self.name
        return '.'.join(quote + part.replace(quote, quote * 2) + quote
                        for part in (self.db_name, self.name))

    def _check_unique(self, code_name: str, db_name: str) -> None:
        for c in self.columns:
            if c.code_name == code_name or c.db_name == db_name:
                raise report(SchemaDefinitionError(
                    f'Table {self.name!r} already contains a column named '
                    f'{code_name!r} or {db_name!r}'), logger)

    def add_column(self, col_type: ColumnType | Column, db_name: str | None = None,
                   code_name: str | None = None, auto_inc: bool = False,
                   listed: bool = True) -> Column:
        """Append a column.

        Accepts either a prepared `Column` or its parts. `code_name` defaults
        to `db_name`.

        Raises
            SchemaDefinitionError: a column with the same code or db name exists
        """
        if isinstance(col_type, Column):
            c = col_type
        else:
            if db_name is None:
                raise TypeError('add_column() requires a db_name')
            c = Column(col_type, db_name, code_name or db_name, auto_inc, listed)
        self._check_unique(c.code_name, c.db_name)
        self.columns.append(c)
        return c

    def find_c(self, code_name: str) -> Column | None:
        """Find a column by its code name."""
        return next((c for c in self.columns if c.code_name == code_name), None)

    def find_d(self, db_name: str) -> Column | None:
        """Find a column by its database name."""
        return next((c for c in self.columns if c.db_name == db_name), None)

    @property
    def db_names(self) -> list[str]:
        return [c.db_name for c in self.columns]

    @property
    def auto_inc_column(self) -> Column | None:
        return next((c for c in self.columns if c.auto_inc), None)

    def add_columns_by_class_properties(self, entity_type: type) -> list[Column]:
        """Add one column per settable field of `entity_type`.

        Database names equal code names; types are inferred from the field
        annotations.
        """
        return [self.add_column(infer_column_type(hint), name)
                for name, hint, _ in _entity_fields(entity_type)]

    def add_columns_by_attributes(self, entity_type: type, to_lowercase: bool = True,
                                  inherit: bool = False, listed: bool = True) -> list[Column]:
        """Add a column for each field of `entity_type` that carries `Save` metadata.

        Fields whose code or database name is already taken are skipped.

        Args:
            entity_type: Dataclass or annotated class to scan
            to_lowercase: Lowercase the database name when no explicit name is given
            inherit: Include fields declared on base classes
            listed: Whether the new columns take part in entity marshalling

        Returns
            The columns that were added
        """
        added = []
        for name, hint, save in _entity_fields(entity_type, inherit=inherit):
            if save is None:
                continue
            db_name = save.db_name or (name.lower() if to_lowercase else name)
            if self.find_c(name) or self.find_d(db_name):
                logger.debug(f'Skipping {entity_type.__name__}.{name}: {db_name!r} already in {self.name}')
                continue
            col_type = save.col_type or infer_column_type(hint)
            added.append(self.add_column(col_type, db_name, name, save.auto_inc,
                                         listed and save.listed))
        return added


class Structure:
    """A database and its tables, unique by name.
    """

    def __init__(self, db_name: str | None = None, *tables: Table) -> None:
        self.db_name = db_name or None
        self.tables: list[Table] = []
        for t in tables:
            self._check_unique(t.name)
            self.tables.append(t)

    def __repr__(self) -> str:
        return f'Structure({self.db_name!r}, tables={[t.name for t in self.tables]!r})'

    def __iter__(self) -> Iterator[Table]:
        return iter(self.tables)

    def _check_unique(self, name: str) -> None:
        if self.get_table(name) is not None:
            raise report(SchemaDefinitionError(
                f'Table {name!r} already exists in the structure'), logger)

    def add_table(self, name: str) -> Table:
        """Create and register an empty table.

        Raises
            SchemaDefinitionError: a table with this name already exists
        """
        self._check_unique(name)
        table = Table(name, db_name=self.db_name)
        self.tables.append(table)
        return table

    def get_table(self, name: str) -> Table | None:
        return next((t for t in self.tables if t.name == name), None)
