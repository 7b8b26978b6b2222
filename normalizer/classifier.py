"""Decide whether a record already has the standard telemetry shape."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import jsonschema

TELEMETRY_TYPES = frozenset({
    "AvailabilityData",
    "EventData",
    "ExceptionData",
    "MessageData",
    "MetricData",
    "PageViewData",
    "PageViewPerfData",
    "RemoteDependencyData",
    "RequestData",
})

STANDARD_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["data"],
    "properties": {
        "data": {
            "type": "object",
            "required": ["baseType", "baseData"],
            "properties": {
                "baseType": {"type": "string", "minLength": 1},
                "baseData": {"type": "object"},
            },
        },
    },
}

# Records may be any Mapping, not only dict.
_MappingValidator = jsonschema.validators.extend(
    jsonschema.Draft202012Validator,
    type_checker=jsonschema.Draft202012Validator.TYPE_CHECKER.redefine(
        "object", lambda _checker, instance: isinstance(instance, Mapping)
    ),
)
_validator = _MappingValidator(STANDARD_SCHEMA)


class SchemaKind(Enum):
    STANDARD = "standard"
    FREEFORM = "freeform"


class SchemaMismatch(Enum):
    MISSING_FIELDS = "missing data/baseType/baseData"
    UNKNOWN_TYPE = "unknown baseType"


@dataclass(frozen=True)
class Classification:
    schema: SchemaKind
    mismatch: SchemaMismatch | None = None
    base_type: str | None = None
    errors: tuple = ()

    @property
    def is_standard(self) -> bool:
        return self.schema is SchemaKind.STANDARD

    def explain(self) -> str | None:
        """Diagnostic line for a record that fell back to the freeform path."""
        if self.mismatch is SchemaMismatch.MISSING_FIELDS:
            return (
                "The event does not meet the standard schema of Application "
                "Insights output. Missing data, baseType or baseData property."
            )
        if self.mismatch is SchemaMismatch.UNKNOWN_TYPE:
            return (
                f"Unknown telemetry type {self.base_type}. Event will be "
                "treated as a non standard schema event."
            )
        return None


def classify(record) -> Classification:
    """Classify *record* as standard or freeform. Never raises."""
    errors = tuple(error.message for error in _validator.iter_errors(record))
    if errors:
        return Classification(
            schema=SchemaKind.FREEFORM,
            mismatch=SchemaMismatch.MISSING_FIELDS,
            errors=errors,
        )

    base_type = record["data"]["baseType"]
    if base_type not in TELEMETRY_TYPES:
        return Classification(
            schema=SchemaKind.FREEFORM,
            mismatch=SchemaMismatch.UNKNOWN_TYPE,
            base_type=base_type,
        )

    return Classification(schema=SchemaKind.STANDARD, base_type=base_type)
