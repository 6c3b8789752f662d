# File: facadegen/runtime.py
"""
facadegen - Runtime Support
============================
The small base layer every generated table facade imports.

A generated unit defines one ``TableFacade`` subclass holding ``Column``
constants, an optional ``PrimaryKey``, ``ForeignKey`` constants, and two
nested classes:

* ``Row`` — a record of the table with one property per column and one
  fetcher per foreign key.
* ``Assist`` — column handles plus navigators that walk foreign keys,
  building a path of keys from the root table.

Generation never imports this module; only generated code does.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Type, TypeVar

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("facadegen.runtime")

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Metadata records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Column:
    """Storage metadata of one column, declared as a facade class constant."""

    name: str
    db_type: int = 1111
    type_name: str = ""
    size: int = 0
    has_decimal_digits: bool = False
    decimal_digits: int = 0
    remarks: str = ""
    default_value: str = ""
    ordinal_position: int = 0
    not_null: bool = False


@dataclass(frozen=True, slots=True)
class PrimaryKey:
    name: str
    columns: Tuple[str, ...]
    pseudo: bool = False


@dataclass(frozen=True, slots=True)
class ForeignKey:
    """A foreign key from the declaring table to ``references``."""

    name: str
    references: str
    columns: Tuple[str, ...]
    ref_columns: Tuple[str, ...]
    pseudo: bool = False


def require_not_none(value: Optional[T], name: str) -> T:
    """Precondition used by generated setters of not-null and key columns."""
    if value is None:
        raise ValueError(f"Column '{name}' must not be None.")
    return value


# ---------------------------------------------------------------------------
# Row
# ---------------------------------------------------------------------------


class Row:
    """
    One record of a table.

    Values live in a plain dict keyed by column name.  Related rows, when
    loaded, are stored as nested mappings under the foreign key's name.
    """

    TABLE_PATH: Tuple[str, str] = ("", "")

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(data) if data else {}

    def _get_value(self, name: str) -> Any:
        return self._data.get(name)

    def _set_value(self, name: str, value: Any) -> None:
        self._data[name] = value

    def _fetch(self, facade: Type["TableFacade"], foreign_key: ForeignKey) -> Optional["Row"]:
        related: Any = self._data.get(foreign_key.name)
        if related is None:
            return None
        return facade.row(related)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return type(self) is type(other) and self._data == other._data

    def __repr__(self) -> str:
        schema, table = self.TABLE_PATH
        return f"<Row {schema}.{table} {self._data!r}>"


# ---------------------------------------------------------------------------
# Assist
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnHandle:
    """Default column handle: a column reached through a path of foreign keys."""

    assist: "Assist"
    column: Column

    @property
    def path(self) -> Tuple[str, ...]:
        return self.assist.path

    def __str__(self) -> str:
        return ".".join(self.path + (self.column.name,))


ColumnBuilder = Callable[["Assist", Column], Any]


class Assist:
    """
    Query-building helper of a table.

    ``parent`` is the assist this one was reached from (``None`` at the
    root) and ``foreign_key`` the key followed to get here.  ``builder``
    turns ``(assist, column)`` into a column handle; generated subclasses
    call it once per column.
    """

    def __init__(
        self,
        builder: Optional[ColumnBuilder] = None,
        parent: Optional["Assist"] = None,
        foreign_key: Optional[ForeignKey] = None,
    ) -> None:
        self._parent: Optional[Assist] = parent
        self._foreign_key: Optional[ForeignKey] = foreign_key

    @property
    def path(self) -> Tuple[str, ...]:
        """Foreign-key names followed from the root assist."""
        if self._parent is None or self._foreign_key is None:
            return ()
        return self._parent.path + (self._foreign_key.name,)

    def __repr__(self) -> str:
        return f"<{type(self).__qualname__} path={'.'.join(self.path) or '-'}>"


# ---------------------------------------------------------------------------
# TableFacade
# ---------------------------------------------------------------------------


class TableFacade:
    """Base class of every generated table facade."""

    SCHEMA: str = ""
    TABLE: str = ""
    TYPE: str = "TABLE"
    REMARKS: str = ""
    PRIMARY_KEY: Optional[PrimaryKey] = None

    Row: Type[Row] = Row
    Assist: Type[Assist] = Assist

    @classmethod
    def path(cls) -> str:
        if not cls.SCHEMA:
            return cls.TABLE
        return f"{cls.SCHEMA}.{cls.TABLE}"

    @classmethod
    def columns(cls) -> List[Column]:
        """Column constants of this facade in ordinal order."""
        found: List[Column] = [v for v in vars(cls).values() if isinstance(v, Column)]
        return sorted(found, key=lambda column: column.ordinal_position)

    @classmethod
    def foreign_keys(cls) -> List[ForeignKey]:
        return [v for v in vars(cls).values() if isinstance(v, ForeignKey)]

    @classmethod
    def row(cls, data: Optional[Mapping[str, Any]] = None) -> Any:
        return cls.Row(data)

    @classmethod
    def assist(cls, builder: Optional[ColumnBuilder] = None) -> Any:
        return cls.Assist(builder or ColumnHandle)


# Member names the base classes above already define; generated columns and
# relationships may not reuse them.
RESERVED_NAMES: FrozenSet[str] = frozenset({
    "SCHEMA", "TABLE", "TYPE", "REMARKS", "PRIMARY_KEY", "Row", "Assist",
    "path", "columns", "foreign_keys", "row", "assist",
    "TABLE_PATH", "as_dict", "_data", "_get_value", "_set_value", "_fetch",
    "_parent", "_foreign_key", "_builder",
})


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Column",
    "PrimaryKey",
    "ForeignKey",
    "require_not_none",
    "Row",
    "ColumnHandle",
    "ColumnBuilder",
    "Assist",
    "TableFacade",
    "RESERVED_NAMES",
]

logger.debug("facadegen.runtime loaded.")
