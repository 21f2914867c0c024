"""
localdb Core - Filter vocabulary.

Predicate constructors (Record -> bool), the or() expression parser and
FilterMixin, the chainable filter surface shared by read queries and the
deferred update/delete builders.

Comparison notes:
- eq/neq/in/is compare without the bool/int aliasing Python does by default
  (True does not equal 1).
- Ordering comparisons never match a missing or null column value; comparing
  incompatible types (str against int) raises TypeError to the caller.
"""

from __future__ import annotations

import json
import operator
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Mapping

from localdb.exceptions import InvalidFilterException
from localdb.schemas import Record

Predicate = Callable[[Record], bool]


# =============================================================================
# Value comparison
# =============================================================================


def strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _ordering(op: Callable[[Any, Any], bool], column: str, value: Any) -> Predicate:
    def predicate(record: Record) -> bool:
        current = record.get(column)
        if current is None or value is None:
            return False
        return op(current, value)

    return predicate


def like_pattern(pattern: str, case_sensitive: bool = True) -> re.Pattern[str]:
    """SQL LIKE -> regex: % => .*, _ => ."""
    escaped = re.escape(pattern)
    regex = escaped.replace("%", ".*").replace("_", ".")
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile(regex, flags)


def contains_value(haystack: Any, needle: Any) -> bool:
    """
    Containment used by contains().

    list column: any overlap with a list needle, membership for a scalar one.
    dict column with dict needle: every needle item present.
    Anything else: substring of the serialized forms.
    """
    if haystack is None:
        return False
    if isinstance(haystack, list):
        if isinstance(needle, (list, tuple, set)):
            return any(item in haystack for item in needle)
        return needle in haystack
    if isinstance(haystack, dict) and isinstance(needle, dict):
        return all(key in haystack and haystack[key] == val for key, val in needle.items())
    text = haystack if isinstance(haystack, str) else json.dumps(haystack, default=str)
    target = needle if isinstance(needle, str) else json.dumps(needle, default=str)
    return target in text


_IS_LITERALS = {"null": None, "true": True, "false": False}


def _is_literal(value: Any) -> Any:
    if isinstance(value, str) and value.lower() in _IS_LITERALS:
        return _IS_LITERALS[value.lower()]
    return value


# =============================================================================
# Predicate constructors
# =============================================================================


def eq(column: str, value: Any) -> Predicate:
    return lambda record: strict_equals(record.get(column), value)


def neq(column: str, value: Any) -> Predicate:
    return lambda record: not strict_equals(record.get(column), value)


def in_(column: str, values: Iterable[Any]) -> Predicate:
    # Materialized once so generators survive repeated evaluation.
    options = list(values)
    return lambda record: any(strict_equals(record.get(column), v) for v in options)


def gt(column: str, value: Any) -> Predicate:
    return _ordering(operator.gt, column, value)


def gte(column: str, value: Any) -> Predicate:
    return _ordering(operator.ge, column, value)


def lt(column: str, value: Any) -> Predicate:
    return _ordering(operator.lt, column, value)


def lte(column: str, value: Any) -> Predicate:
    return _ordering(operator.le, column, value)


def is_(column: str, value: Any) -> Predicate:
    expected = _is_literal(value)
    return lambda record: strict_equals(record.get(column), expected)


def like(column: str, pattern: str) -> Predicate:
    compiled = like_pattern(pattern)

    def predicate(record: Record) -> bool:
        current = record.get(column)
        return current is not None and compiled.fullmatch(str(current)) is not None

    return predicate


def ilike(column: str, pattern: str) -> Predicate:
    compiled = like_pattern(pattern, case_sensitive=False)

    def predicate(record: Record) -> bool:
        current = record.get(column)
        return current is not None and compiled.fullmatch(str(current)) is not None

    return predicate


def contains(column: str, value: Any) -> Predicate:
    return lambda record: contains_value(record.get(column), value)


def match(criteria: Mapping[str, Any]) -> Predicate:
    checks = [eq(column, value) for column, value in criteria.items()]
    return lambda record: all(check(record) for check in checks)


def text_search(column: str, query: str) -> Predicate:
    terms = [term.strip("'\"").lower() for term in query.split()]
    terms = [term for term in terms if term]

    def predicate(record: Record) -> bool:
        current = record.get(column)
        if current is None:
            return False
        text = str(current).lower()
        return any(term in text for term in terms)

    return predicate


NEGATABLE: dict[str, Callable[[str, Any], Predicate]] = {
    "eq": eq,
    "neq": neq,
    "is": is_,
    "in": in_,
    "like": like,
    "ilike": ilike,
}


def not_(column: str, op: str, value: Any) -> Predicate:
    if op not in NEGATABLE:
        raise InvalidFilterException(
            message=f"Unsupported operator for not(): {op}",
            details={"operator": op, "allowed": sorted(NEGATABLE)},
        )
    if op == "in" and isinstance(value, str):
        value = parse_in_list(value)
    inner = NEGATABLE[op](column, value)
    return lambda record: not inner(record)


# =============================================================================
# or() expression parser
# =============================================================================

OR_OPERATORS = frozenset({"eq", "neq", "gt", "gte", "lt", "lte", "like", "ilike", "is", "in"})


def split_top_level(expr: str) -> list[str]:
    """Split on commas that are neither inside parentheses nor double quotes."""
    parts: list[str] = []
    depth = 0
    quoted = False
    current = ""
    for ch in expr:
        if ch == '"':
            quoted = not quoted
        elif ch == "(" and not quoted:
            depth += 1
        elif ch == ")" and not quoted:
            depth -= 1
        if ch == "," and depth == 0 and not quoted:
            parts.append(current)
            current = ""
        else:
            current += ch
    parts.append(current)
    return [part.strip() for part in parts if part.strip()]


def parse_in_list(raw: str) -> list[str]:
    """Parse ``(a,b,"c d")`` into its string members."""
    raw = raw.strip()
    if not (raw.startswith("(") and raw.endswith(")")):
        raise InvalidFilterException(
            message="in values must be parenthesized",
            details={"value": raw},
        )
    return [item.strip('"') for item in split_top_level(raw[1:-1])]


def _coerce_text(current: Any, raw: str) -> Any:
    """Interpret a textual filter value against the type of the stored value."""
    if isinstance(current, bool):
        lowered = raw.lower()
        return _IS_LITERALS.get(lowered, raw)
    if isinstance(current, (int, float)):
        try:
            return float(raw)
        except ValueError:
            return raw
    return raw


def _text_condition(column: str, op: str, raw: str) -> Predicate:
    raw = raw.strip('"')

    if op == "is":
        return is_(column, raw)
    if op in ("like", "ilike"):
        pattern = raw.replace("*", "%")
        return like(column, pattern) if op == "like" else ilike(column, pattern)
    if op == "in":
        members = parse_in_list(raw)

        def member(record: Record) -> bool:
            current = record.get(column)
            if current is None:
                return False
            return any(strict_equals(current, _coerce_text(current, m)) for m in members)

        return member

    compare = {
        "eq": operator.eq,
        "neq": operator.ne,
        "gt": operator.gt,
        "gte": operator.ge,
        "lt": operator.lt,
        "lte": operator.le,
    }[op]

    def predicate(record: Record) -> bool:
        current = record.get(column)
        if current is None:
            return False
        target = _coerce_text(current, raw)
        if type(target) is str and not isinstance(current, str):
            current = str(current)
        return compare(current, target)

    return predicate


def parse_condition(token: str) -> Predicate:
    """Parse one ``column.operator.value`` triple (``column.not.operator.value`` negates)."""
    if token.startswith(("and(", "or(", "not.and(", "not.or(")):
        raise InvalidFilterException(
            message="Nested and()/or() groups are not supported",
            details={"condition": token},
        )
    column, _, rest = token.partition(".")
    op, _, raw = rest.partition(".")
    negate = op == "not"
    if negate:
        op, _, raw = raw.partition(".")
    if not column or not op or not raw:
        raise InvalidFilterException(
            message=f"Malformed filter condition: {token}",
            details={"condition": token},
        )
    if op not in OR_OPERATORS:
        raise InvalidFilterException(
            message=f"Unsupported operator: {op}",
            details={"operator": op, "allowed": sorted(OR_OPERATORS)},
        )
    predicate = _text_condition(column, op, raw)
    if negate:
        return lambda record: not predicate(record)
    return predicate


def parse_or(expr: str) -> Predicate:
    """Build one predicate that is true when any condition in the expression is."""
    conditions = [parse_condition(token) for token in split_top_level(expr)]
    if not conditions:
        raise InvalidFilterException(message="Empty or() expression", details={"expression": expr})
    return lambda record: any(condition(record) for condition in conditions)


# =============================================================================
# Chainable surface
# =============================================================================

_BY_OPERATOR: dict[str, Callable[[str, Any], Predicate]] = {
    "eq": eq,
    "neq": neq,
    "gt": gt,
    "gte": gte,
    "lt": lt,
    "lte": lte,
    "is": is_,
    "in": in_,
    "like": like,
    "ilike": ilike,
    "cs": contains,
    "fts": text_search,
}

_TEXT_OPERATORS = frozenset({"eq", "neq", "gt", "gte", "lt", "lte", "in"})


class FilterMixin(ABC):
    """
    Filter methods shared by query and mutation builders.

    Subclasses implement _with_filter(), returning a new builder with the
    predicate appended; every method here therefore returns a new builder.
    """

    @abstractmethod
    def _with_filter(self, predicate: Predicate):
        """Return a new builder with the predicate appended."""
        pass

    def eq(self, column: str, value: Any):
        return self._with_filter(eq(column, value))

    def neq(self, column: str, value: Any):
        return self._with_filter(neq(column, value))

    def in_(self, column: str, values: Iterable[Any]):
        return self._with_filter(in_(column, values))

    def gt(self, column: str, value: Any):
        return self._with_filter(gt(column, value))

    def gte(self, column: str, value: Any):
        return self._with_filter(gte(column, value))

    def lt(self, column: str, value: Any):
        return self._with_filter(lt(column, value))

    def lte(self, column: str, value: Any):
        return self._with_filter(lte(column, value))

    def is_(self, column: str, value: Any):
        return self._with_filter(is_(column, value))

    def like(self, column: str, pattern: str):
        return self._with_filter(like(column, pattern))

    def ilike(self, column: str, pattern: str):
        return self._with_filter(ilike(column, pattern))

    def contains(self, column: str, value: Any):
        return self._with_filter(contains(column, value))

    def not_(self, column: str, op: str, value: Any):
        return self._with_filter(not_(column, op, value))

    def match(self, criteria: Mapping[str, Any]):
        return self._with_filter(match(criteria))

    def or_(self, filters: str):
        return self._with_filter(parse_or(filters))

    def text_search(self, column: str, query: str):
        return self._with_filter(text_search(column, query))

    def filter(self, column: str, op: str, value: Any):
        """Generic form: ``filter("status", "eq", "open")``, ``filter("x", "not.in", [1, 2])``."""
        negate = op.startswith("not.")
        if negate:
            op = op[4:]
        if isinstance(value, str) and op in _TEXT_OPERATORS:
            # Textual values are read against the stored type, as in or_().
            predicate = _text_condition(column, op, value)
            if negate:
                return self._with_filter(lambda record: not predicate(record))
            return self._with_filter(predicate)
        if negate:
            return self.not_(column, op, value)
        if op not in _BY_OPERATOR:
            raise InvalidFilterException(
                message=f"Unsupported operator: {op}",
                details={"operator": op, "allowed": sorted(_BY_OPERATOR)},
            )
        if op == "in" and isinstance(value, str):
            value = parse_in_list(value)
        return self._with_filter(_BY_OPERATOR[op](column, value))
