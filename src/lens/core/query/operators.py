# src/lens/core/query/operators.py
from typing import Any, Callable, Dict, Sequence

from sqlalchemy import not_
from sqlalchemy.sql.elements import ColumnElement

from ..exceptions import BadMethodCallError, InvalidArgumentError

Predicate = Callable[[Any, Any], ColumnElement]

# Operators with dedicated handling in the filter resolver, they can never be
# registered as regular predicates.
NOT_LIKE = "nlike"
NULL_CHECK = "null"
RESERVED_OPERATORS = frozenset({NOT_LIKE, NULL_CHECK})

# Maps the `<field>:<operator>` suffix of a filter key to a predicate factory.
# For example, `{"views:gte": 18}` calls `OPERATOR_MAP["gte"](column, 18)`.
OPERATOR_MAP: Dict[str, Predicate] = {}


def register_operator(name: str, predicate: Predicate) -> None:
    """Adds a predicate factory to the registry under a lower-cased name."""
    key = name.lower()
    if not key.isidentifier():
        raise InvalidArgumentError(f"Operator name '{name}' is not a valid identifier")
    if key in RESERVED_OPERATORS:
        raise InvalidArgumentError(f"Operator name '{name}' is reserved")
    if key in OPERATOR_MAP:
        raise InvalidArgumentError(f"Operator '{name}' is already registered")
    if not callable(predicate):
        raise InvalidArgumentError(f"Operator '{name}' must map to a callable")
    OPERATOR_MAP[key] = predicate


def get_operator(name: str) -> Predicate:
    """Looks up a predicate factory, operator names are case-insensitive."""
    try:
        return OPERATOR_MAP[name.lower()]
    except KeyError:
        raise BadMethodCallError(
            f'Invalid expression called, the operator "{name}" does not exist.'
        ) from None


def is_sequence(value: Any) -> bool:
    """True for lists, tuples and sets, strings and bytes count as scalars."""
    return isinstance(value, (list, tuple, set, frozenset))


def _as_list(value: Any) -> Sequence[Any]:
    return list(value) if is_sequence(value) else [value]


def _between(column, value) -> ColumnElement:
    bounds = _as_list(value)
    if len(bounds) != 2:
        raise InvalidArgumentError("The between operator expects exactly two values")
    return column.between(bounds[0], bounds[1])


# --- Registry ---

register_operator("eq", lambda column, value: column == value)        # Equal
register_operator("neq", lambda column, value: column != value)       # Not Equal
register_operator("gt", lambda column, value: column > value)         # Greater Than
register_operator("gte", lambda column, value: column >= value)       # Greater Than or Equal
register_operator("lt", lambda column, value: column < value)         # Less Than
register_operator("lte", lambda column, value: column <= value)       # Less Than or Equal
register_operator("like", lambda column, value: column.like(value))   # String LIKE
register_operator("notlike", lambda column, value: column.not_like(value))
register_operator("ilike", lambda column, value: column.ilike(value))  # Case-insensitive LIKE
register_operator("in", lambda column, value: column.in_(_as_list(value)))
register_operator("notin", lambda column, value: column.not_in(_as_list(value)))
register_operator("between", _between)
register_operator("isnull", lambda column, value: column.is_(None))
register_operator("isnotnull", lambda column, value: column.is_not(None))


def not_like(column, value) -> ColumnElement:
    return not_(column.like(value))


def null_check(column, value) -> ColumnElement:
    """`IS NULL` when the value reads "true", `IS NOT NULL` otherwise."""
    if str(value).lower() == "true":
        return column.is_(None)
    return column.is_not(None)
