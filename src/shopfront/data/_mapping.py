"""Row-to-dataclass mapping with type coercion.

Converts dict rows from the gateway into frozen entity dataclasses.
SQLite hands back ints for booleans and strings for some numeric
columns; fields annotated ``int``, ``float``, ``bool`` or ``str`` are
coerced to match.
"""

import dataclasses
import types
from functools import cache
from typing import Any, get_args, get_origin, get_type_hints

_COERCIBLE: dict[type, Any] = {
    int: lambda v: int(v) if v != "" else 0,
    float: lambda v: float(v) if v != "" else 0.0,
    bool: lambda v: bool(int(v)) if isinstance(v, str) else bool(v),
    str: str,
}


@cache
def _coercion_map(cls: type) -> dict[str, type | None]:
    """``{field_name: target_type}``; ``None`` where no coercion applies."""
    hints = get_type_hints(cls)
    result: dict[str, type | None] = {}
    for f in dataclasses.fields(cls):
        annotation = hints.get(f.name, f.type)
        # X | None coerces to X
        if get_origin(annotation) is types.UnionType:
            args = [a for a in get_args(annotation) if a is not type(None)]
            annotation = args[0] if len(args) == 1 else None
        result[f.name] = annotation if annotation in _COERCIBLE else None
    return result


def _coerce(value: Any, target: type | None) -> Any:
    if target is None or value is None or isinstance(value, target):
        return value
    # bool is an int subclass; an int column destined for bool still converts
    return _COERCIBLE[target](value)


def map_row[T](cls: type[T], row: dict[str, Any]) -> T:
    """Map a dict row to a dataclass instance.

    Columns without a matching field are ignored, so ``SELECT p.*,
    c.name AS category_name`` is fine for a narrower dataclass.

    Raises ``TypeError`` if a required field is missing from the row.
    """
    if not dataclasses.is_dataclass(cls):
        msg = f"{cls.__name__} is not a dataclass"
        raise TypeError(msg)
    coercion = _coercion_map(cls)
    return cls(**{k: _coerce(v, coercion[k]) for k, v in row.items() if k in coercion})


def map_rows[T](cls: type[T], rows: list[dict[str, Any]]) -> list[T]:
    """Map a list of dict rows to dataclass instances."""
    return [map_row(cls, row) for row in rows]
