"""
Request payload validation.

The check functions are pure: each takes a value and returns an error phrase,
or None when the value passes. A Validator runs a declared list of checks per
field, in order, and collects every failing field before raising.
"""

import re
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from pydantic import HttpUrl, TypeAdapter, ValidationError

from errors import ValidationFailed

Check = Callable[[Any], Optional[str]]

EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")
INT_RE = re.compile(r"^[+-]?\d+$")

_url_adapter = TypeAdapter(HttpUrl)


def as_int(value: Any) -> Optional[int]:
    """Return value as an int if it is integral, else None. Booleans are not integers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and INT_RE.match(value.strip()):
        return int(value.strip())
    return None


def required(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return "is required"
    return None


def max_length(value: Any, n: int) -> Optional[str]:
    if len(value) > n:
        return f"cannot be more than {n} characters"
    return None


def min_length(value: Any, n: int) -> Optional[str]:
    if len(value) < n:
        return f"must be at least {n} characters"
    return None


def range_int(value: Any, lo: int, hi: int) -> Optional[str]:
    number = as_int(value)
    if number is None or not lo <= number <= hi:
        return f"must be an integer between {lo} and {hi}"
    return None


def is_email(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not EMAIL_RE.match(value):
        return "must be a valid email"
    return None


def is_url(value: Any) -> Optional[str]:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return "must be a valid URL"
    return None


def one_of(value: Any, choices: Iterable[str]) -> Optional[str]:
    choices = list(choices)
    if value not in choices:
        return "must be one of: " + ", ".join(choices)
    return None


@dataclass(frozen=True)
class FieldRules:
    name: str
    label: str
    checks: Sequence[Check] = ()
    optional: bool = False
    default: Any = None
    text: bool = True
    trim: bool = True
    normalize: Optional[Callable[[Any], Any]] = None


@dataclass
class Validator:
    fields: List[FieldRules] = field(default_factory=list)

    def _prepare(self, rules: FieldRules, value: Any) -> Any:
        if not rules.text or value is None:
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str) and rules.trim:
            value = value.strip()
        return value

    def validate(self, payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Return the normalized values or raise ValidationFailed listing every bad field."""
        payload = payload or {}
        errors: List[Dict[str, str]] = []
        cleaned: Dict[str, Any] = {}

        for rules in self.fields:
            value = self._prepare(rules, payload.get(rules.name))

            if rules.optional and required(value) is not None:
                cleaned[rules.name] = rules.default
                continue

            if rules.text and value is not None and not isinstance(value, str):
                errors.append({"field": rules.name, "message": f"{rules.label} must be a string"})
                continue

            for check in (required, *rules.checks):
                problem = check(value)
                if problem:
                    errors.append({"field": rules.name, "message": f"{rules.label} {problem}"})
                    break
            else:
                cleaned[rules.name] = rules.normalize(value) if rules.normalize else value

        if errors:
            raise ValidationFailed(errors)
        return cleaned


REVIEW_RULES = Validator([
    FieldRules("name", "Name", [partial(max_length, n=100)]),
    FieldRules("email", "Email", [is_email], normalize=str.lower),
    FieldRules("rating", "Rating", [partial(range_int, lo=1, hi=5)], text=False, normalize=as_int),
    FieldRules("comment", "Comment", [partial(max_length, n=1000)]),
])

PROJECT_CATEGORIES = ("first", "second", "third", "ongoing", "complete")

PROJECT_RULES = Validator([
    FieldRules("title", "Title", [partial(max_length, n=200)]),
    FieldRules("imageUrl", "Image URL", [is_url]),
    FieldRules("category", "Category", [partial(one_of, choices=PROJECT_CATEGORIES)],
               optional=True, default="first"),
    FieldRules("description", "Description", [partial(max_length, n=1000)], optional=True, default=""),
])

LOGIN_RULES = Validator([
    FieldRules("email", "Email", [is_email]),
    FieldRules("password", "Password", [partial(min_length, n=6)], trim=False),
])
