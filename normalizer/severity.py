"""Map free-form severity tokens onto the fixed Application Insights scale."""

import math
from dataclasses import dataclass, field
from enum import IntEnum

from normalizer.path_resolver import ABSENT


class SeverityLevel(IntEnum):
    VERBOSE = 0
    INFORMATION = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4

    @classmethod
    def from_name(cls, name: str) -> "SeverityLevel":
        return cls[name.strip().upper()]


# Highest severity first: a token listed under several levels resolves to
# the most severe one.
EVALUATION_ORDER = tuple(sorted(SeverityLevel, reverse=True))


def normalize_token(token) -> str | None:
    """Canonical comparison form of a configured or record-provided token.

    Strings are stripped and lower-cased. Numbers, and strings that parse as
    finite numbers, collapse to one numeric spelling so ``100``, ``"100"``
    and ``100.0`` compare equal.
    """
    if token is None or token is ABSENT:
        return None
    if isinstance(token, bool):
        return "true" if token else "false"
    if isinstance(token, (int, float)):
        return _numeric_text(token)

    text = str(token).strip().lower()
    try:
        number = float(text)
    except ValueError:
        return text
    if not math.isfinite(number):
        return text
    return _numeric_text(number)


def _numeric_text(number) -> str:
    if isinstance(number, float):
        if not math.isfinite(number):
            return str(number).lower()
        if number.is_integer():
            return str(int(number))
        return repr(number)
    return str(number)


def _default_tokens() -> dict:
    return {level: frozenset({level.name.lower()}) for level in SeverityLevel}


@dataclass(frozen=True)
class SeverityMapping:
    """Accepted tokens per severity level, stored in normalized form."""

    tokens: dict = field(default_factory=_default_tokens)

    @classmethod
    def with_overrides(cls, overrides: dict) -> "SeverityMapping":
        """Start from the defaults and replace the token set of each given level."""
        tokens = _default_tokens()
        for level, values in overrides.items():
            if not isinstance(level, SeverityLevel):
                level = SeverityLevel.from_name(str(level))
            normalized = (normalize_token(v) for v in values)
            tokens[level] = frozenset(v for v in normalized if v is not None)
        return cls(tokens=tokens)

    def tokens_for(self, level: SeverityLevel) -> frozenset:
        return self.tokens.get(level, frozenset())


def map_severity(
    token,
    mapping: SeverityMapping,
    default_level: SeverityLevel = SeverityLevel.INFORMATION,
) -> SeverityLevel:
    """Return the severity level *token* maps to, or *default_level*."""
    normalized = normalize_token(token)
    if normalized is None:
        return default_level

    for level in EVALUATION_ORDER:
        if normalized in mapping.tokens_for(level):
            return level
    return default_level
