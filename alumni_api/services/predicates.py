"""Structural filters and sort keys understood by every content backend."""
from dataclasses import dataclass, field
from enum import Enum
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


class Operator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"


@dataclass(frozen=True)
class Condition:
    field: str
    op: Operator
    value: Any

    def matches(self, row: Dict[str, Any]) -> bool:
        actual = row.get(self.field)
        if self.op is Operator.EQ:
            return actual == self.value
        if self.op is Operator.NEQ:
            return actual != self.value
        if self.op is Operator.IN:
            return actual in self.value
        # Range comparisons never match missing values, as in SQL
        if actual is None or self.value is None:
            return False
        if self.op is Operator.GT:
            return actual > self.value
        if self.op is Operator.GTE:
            return actual >= self.value
        if self.op is Operator.LT:
            return actual < self.value
        return actual <= self.value


@dataclass(frozen=True)
class TextSearch:
    """Case-insensitive substring match over any of ``fields``."""
    term: str
    fields: Tuple[str, ...]

    def matches(self, row: Dict[str, Any]) -> bool:
        needle = self.term.lower()
        for name in self.fields:
            value = row.get(name)
            if isinstance(value, str) and needle in value.lower():
                return True
        return False


@dataclass(frozen=True)
class AnyOf:
    """Matches when at least one of its conditions does."""
    conditions: Tuple[Condition, ...]

    def matches(self, row: Dict[str, Any]) -> bool:
        return any(condition.matches(row) for condition in self.conditions)


@dataclass
class Predicate:
    conditions: List[Condition] = field(default_factory=list)
    search: Optional[TextSearch] = None
    alternatives: List[AnyOf] = field(default_factory=list)

    def where(self, field_name: str, op: Operator, value: Any) -> "Predicate":
        self.conditions.append(Condition(field_name, op, value))
        return self

    def eq(self, field_name: str, value: Any) -> "Predicate":
        return self.where(field_name, Operator.EQ, value)

    def neq(self, field_name: str, value: Any) -> "Predicate":
        return self.where(field_name, Operator.NEQ, value)

    def gt(self, field_name: str, value: Any) -> "Predicate":
        return self.where(field_name, Operator.GT, value)

    def gte(self, field_name: str, value: Any) -> "Predicate":
        return self.where(field_name, Operator.GTE, value)

    def lt(self, field_name: str, value: Any) -> "Predicate":
        return self.where(field_name, Operator.LT, value)

    def lte(self, field_name: str, value: Any) -> "Predicate":
        return self.where(field_name, Operator.LTE, value)

    def in_(self, field_name: str, values: Iterable[Any]) -> "Predicate":
        return self.where(field_name, Operator.IN, tuple(values))

    def text(self, term: str, fields: Sequence[str]) -> "Predicate":
        self.search = TextSearch(term, tuple(fields))
        return self

    def any_of(self, *conditions: Condition) -> "Predicate":
        self.alternatives.append(AnyOf(tuple(conditions)))
        return self

    def matches(self, row: Dict[str, Any]) -> bool:
        if self.search is not None and not self.search.matches(row):
            return False
        if not all(group.matches(row) for group in self.alternatives):
            return False
        return all(condition.matches(row) for condition in self.conditions)


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


def _compare(a: Any, b: Any) -> int:
    # None sorts last regardless of direction
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    return (a > b) - (a < b)


def sort_rows(rows: List[Dict[str, Any]], keys: Sequence[SortKey]) -> List[Dict[str, Any]]:
    def compare_rows(left: Dict[str, Any], right: Dict[str, Any]) -> int:
        for key in keys:
            a, b = left.get(key.field), right.get(key.field)
            result = _compare(a, b)
            if result and key.descending and a is not None and b is not None:
                result = -result
            if result:
                return result
        return 0

    return sorted(rows, key=cmp_to_key(compare_rows))
