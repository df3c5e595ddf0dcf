"""Single field/operator/value rules evaluated against alert facts."""

from __future__ import annotations

import functools
import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from pgalert.core.exceptions import ConfigurationError
from pgalert.core.types import AlertFact


class MatchOperator(StrEnum):
    """Comparison applied by a Matcher."""

    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    CONTAINS = "CONTAINS"
    REGEX = "REGEX"

    @property
    def display_name(self) -> str:
        return _OPERATOR_DISPLAY[self]


_OPERATOR_DISPLAY: dict[MatchOperator, str] = {
    MatchOperator.EQUALS: "equals",
    MatchOperator.NOT_EQUALS: "not equals",
    MatchOperator.CONTAINS: "contains",
    MatchOperator.REGEX: "regex",
}

# Case-insensitive field vocabulary → AlertFact attribute.
_FIELD_ALIASES: dict[str, str] = {
    "type": "type",
    "alerttype": "type",
    "severity": "severity",
    "alertseverity": "severity",
    "instance": "instance_name",
    "instancename": "instance_name",
    "message": "message",
    "alertmessage": "message",
}


def resolve_field(field: str | None, fact: AlertFact) -> str | None:
    """Return the fact value a matcher field refers to, or None if unknown."""
    if not field:
        return None
    attr = _FIELD_ALIASES.get(field.lower())
    if attr is None:
        return None
    return getattr(fact, attr)


@functools.lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a matcher regex, raising ConfigurationError when malformed."""
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ConfigurationError(f"Invalid matcher regex {pattern!r}: {exc}") from exc


class Matcher(BaseModel):
    """A rule comparing one alert attribute against a value."""

    model_config = ConfigDict(frozen=True)

    field: str = ""
    operator: MatchOperator = MatchOperator.EQUALS
    value: str = ""

    @field_validator("operator", mode="before")
    @classmethod
    def _normalise_operator(cls, v: object) -> object:
        if v is None:
            return MatchOperator.EQUALS
        if isinstance(v, str):
            return v.strip().upper().replace(" ", "_")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def _default_value(cls, v: object) -> object:
        return "" if v is None else v

    @property
    def display_text(self) -> str:
        return f'{self.field} {self.operator.display_name} "{self.value}"'

    def matches(self, actual: str | None) -> bool:
        """Compare *actual* (None treated as empty text) against the rule."""
        actual = actual or ""
        match self.operator:
            case MatchOperator.EQUALS:
                return actual.lower() == self.value.lower()
            case MatchOperator.NOT_EQUALS:
                return actual.lower() != self.value.lower()
            case MatchOperator.CONTAINS:
                return self.value.lower() in actual.lower()
            case MatchOperator.REGEX:
                return compile_pattern(self.value).fullmatch(actual) is not None

    def matches_fact(self, fact: AlertFact) -> bool:
        return self.matches(resolve_field(self.field, fact))

    def validate_pattern(self) -> None:
        """Raise ConfigurationError if this is a REGEX matcher with a bad pattern."""
        if self.operator is MatchOperator.REGEX:
            compile_pattern(self.value)
