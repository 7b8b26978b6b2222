"""Flatten record values into the string-valued property bag of an envelope."""

import json
import math
from collections.abc import Mapping

SCALAR_TYPES = (str, int, float, bool, type(None))

NON_FINITE_TEXT = {"nan": "NaN", "inf": "Infinity", "-inf": "-Infinity"}


def is_scalar(value) -> bool:
    return isinstance(value, SCALAR_TYPES)


def stringify_value(value) -> str:
    """Serialize *value* to compact JSON, keeping mapping key order.

    Values JSON cannot express natively (datetimes, sets, ...) fall back to
    their ``str()`` form. NaN and infinities become the strings ``"NaN"``,
    ``"Infinity"`` and ``"-Infinity"`` so the output stays valid JSON.
    """
    return json.dumps(
        _finite(value),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=_fallback,
    )


def stringify_properties(record: Mapping) -> dict:
    """Return a copy of *record* with every non-scalar value stringified.

    Scalars (str, int, float, bool, None) are kept as they are; mappings and
    sequences are replaced by their compact JSON text, whatever their depth.
    """
    return {
        key: value if is_scalar(value) else stringify_value(value)
        for key, value in record.items()
    }


def to_property_text(value) -> str:
    """Render *value* the way it is stored in an envelope property bag."""
    if isinstance(value, str):
        return value
    if isinstance(value, float) and not math.isfinite(value):
        return NON_FINITE_TEXT[str(value)]
    return stringify_value(value)


def _finite(value):
    if isinstance(value, float) and not math.isfinite(value):
        return NON_FINITE_TEXT[str(value)]
    if isinstance(value, Mapping):
        return {key: _finite(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_finite(item) for item in value]
    return value


def _fallback(value):
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)
