"""
Bind parameter normalization.

This module provides:
- DataType: declared type tag of a bound value, mapped onto SQLAlchemy types
- BindParameter: a (placeholder, value, type) triple
- BindParameterList: the canonical ordered parameter collection

Every statement executed by a Connection goes through BindParameterList,
which accepts raw sequences, raw mappings or an existing list and infers
the type of each raw value.
"""
import enum
from collections.abc import Iterator, Mapping
from typing import Any

import sqlalchemy as sa

__all__ = ['DataType', 'BindParameter', 'BindParameterList']

NAMED_MARKER = ':'


class DataType(enum.Enum):
    """Declared type of a bound value.
    """
    STRING = 'string'
    INT = 'int'
    BOOL = 'bool'
    NULL = 'null'
    LOB = 'lob'

    @property
    def sa_type(self) -> sa.types.TypeEngine | None:
        """SQLAlchemy type used when binding a named parameter.

        STRING leaves the choice to SQLAlchemy, which infers it from the
        value, as numeric values are commonly declared as strings.
        """
        return _SA_TYPES[self]

    @classmethod
    def infer(cls, value: Any) -> 'DataType':
        """Infer the type tag from the runtime type of a value.
        """
        if isinstance(value, enum.Enum):
            value = value.value
        if value is None:
            return cls.NULL
        # bool before int, bool is an int subclass
        if isinstance(value, bool):
            return cls.BOOL
        if isinstance(value, int):
            return cls.INT
        if isinstance(value, bytes | bytearray | memoryview) or callable(getattr(value, 'read', None)):
            return cls.LOB
        return cls.STRING


_SA_TYPES: dict[DataType, sa.types.TypeEngine | None] = {
    DataType.STRING: None,
    DataType.INT: sa.Integer(),
    DataType.BOOL: sa.Boolean(),
    DataType.NULL: sa.types.NullType(),
    DataType.LOB: sa.LargeBinary(),
}


class BindParameter:
    """A value bound to one statement placeholder.

    `name` is either a 1-based position rendered as a string (``'1'``) or a
    named placeholder including its marker (``':id'``).
    """

    __slots__ = ('name', 'value', 'data_type')

    def __init__(self, name: str | int, value: Any, data_type: DataType | None = None) -> None:
        if isinstance(value, enum.Enum):
            value = value.value
        declared = data_type is not None
        if not declared:
            data_type = DataType.infer(value)
        self.name = str(name)
        self.value = _coerce(value, data_type, declared)
        self.data_type = data_type

    def __repr__(self) -> str:
        return f'BindParameter({self.name!r}, {self.value!r}, {self.data_type})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BindParameter):
            return NotImplemented
        return (self.name, self.value, self.data_type) == (other.name, other.value, other.data_type)

    @property
    def is_positional(self) -> bool:
        return self.name.isdigit()

    @property
    def position(self) -> int | None:
        """1-based position for positional parameters, None for named ones.
        """
        return int(self.name) if self.is_positional else None

    @property
    def key(self) -> str:
        """Placeholder name without its marker, as SQLAlchemy expects it.
        """
        return self.name.lstrip(NAMED_MARKER)

    def to_sa(self) -> sa.sql.elements.BindParameter:
        """Build the typed SQLAlchemy bind for a named placeholder.
        """
        return sa.bindparam(self.key, self.value, type_=self.data_type.sa_type)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return bool(int(value))
    return bool(value)


def _to_bytes(value: Any) -> bytes:
    if callable(getattr(value, 'read', None)):
        value = value.read()
    if isinstance(value, str):
        return value.encode('utf-8')
    return bytes(value)


def _coerce(value: Any, data_type: DataType, declared: bool = True) -> Any:
    """Convert a value to the Python type its declared DataType binds as.

    Streams are consumed here, once, so a parameter can be bound any number
    of times. SQL NULL stays None whatever the declared type.

    Raises ValueError or TypeError when the value cannot take the type.
    """
    if value is None or data_type is DataType.NULL:
        return None
    if data_type is DataType.INT:
        return value if type(value) is int else int(value)
    if data_type is DataType.BOOL:
        return _to_bool(value)
    if data_type is DataType.LOB:
        return _to_bytes(value)
    # inferred STRING covers floats, decimals and dates, left to the driver
    if declared and not isinstance(value, str):
        return str(value)
    return value


def _placeholder(key: Any) -> str:
    """Map a raw collection key to a placeholder name.
    """
    if isinstance(key, int) and not isinstance(key, bool):
        return str(key + 1)
    key = str(key)
    if key.isdigit():
        return key
    return NAMED_MARKER + key.lstrip(NAMED_MARKER)


class BindParameterList:
    """Ordered list of BindParameter.

    Accepts any of:
    - None: no parameters
    - BindParameterList: copied, parameters are kept as-is
    - Mapping: int keys are 0-based positions, str keys are names
    - any other iterable: values bound to positions 1..n

    Raw values become BindParameter with an inferred type; BindParameter
    items found in the source are kept untouched, so normalizing an
    already-normalized list yields an identical list.
    """

    def __init__(self, parameters: 'BindParameterList | Mapping[Any, Any] | Any | None' = None) -> None:
        self._parameters: list[BindParameter] = []
        self._generated = 0

        if parameters is None:
            return

        if isinstance(parameters, BindParameterList):
            self._parameters = list(parameters)
            self._generated = parameters._generated
            return

        if isinstance(parameters, str | bytes):
            raise TypeError(f'Parameters must be a sequence or mapping, not {type(parameters).__name__}')

        items = parameters.items() if isinstance(parameters, Mapping) else enumerate(parameters)
        for key, value in items:
            if isinstance(value, BindParameter):
                self._parameters.append(value)
            else:
                self.set(key, value)

    def __iter__(self) -> Iterator[BindParameter]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def __bool__(self) -> bool:
        return bool(self._parameters)

    def __getitem__(self, index: int) -> BindParameter:
        return self._parameters[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BindParameterList):
            return NotImplemented
        return self._parameters == other._parameters

    def __repr__(self) -> str:
        return f'BindParameterList({self._parameters!r})'

    def set(self, key: Any, value: Any, data_type: DataType | None = None) -> BindParameter:
        """Append a parameter for a raw key (0-based position or name).
        """
        parameter = BindParameter(_placeholder(key), value, data_type)
        self._parameters.append(parameter)
        return parameter

    def add(self, value: Any, data_type: DataType | None = None) -> BindParameter:
        """Append a value under a generated unique named placeholder.

        The returned parameter's `name` is what a statement builder writes
        into the SQL text.
        """
        names = {parameter.name for parameter in self._parameters}
        while (name := f'{NAMED_MARKER}_p_{self._generated}') in names:
            self._generated += 1
        self._generated += 1
        parameter = BindParameter(name, value, data_type)
        self._parameters.append(parameter)
        return parameter

    def get(self, name: str | int) -> BindParameter | None:
        """Last parameter bound under a placeholder, or None.
        """
        name = _placeholder(name - 1) if isinstance(name, int) else _placeholder(name)
        for parameter in reversed(self._parameters):
            if parameter.name == name:
                return parameter
        return None

    @property
    def is_positional(self) -> bool:
        """True when every parameter targets a position.

        Raises ValueError when positional and named parameters are mixed.
        """
        kinds = {parameter.is_positional for parameter in self._parameters}
        if len(kinds) > 1:
            raise ValueError('Cannot mix positional and named bind parameters')
        return kinds != {False}

    def positional_values(self) -> tuple[Any, ...]:
        """Values ordered by position, for drivers' positional paramstyle.
        """
        ordered = sorted(self._parameters, key=lambda parameter: parameter.position)
        return tuple(parameter.value for parameter in ordered)

    def to_dict(self) -> dict[str, Any]:
        """Placeholder name to value, the shape log sinks print.
        """
        return {parameter.name: parameter.value for parameter in self._parameters}
