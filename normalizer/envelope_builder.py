"""Build one telemetry envelope per record, standard or freeform."""

import logging
from collections.abc import Mapping

from normalizer.classifier import classify
from normalizer.config import NormalizerConfig
from normalizer.context_tags import (
    SDK_VERSION_TAG,
    ContextTagResolver,
    filter_known_tags,
)
from normalizer.models import (
    SDK_VERSION,
    Envelope,
    EnvelopeData,
    envelope_name,
    format_timestamp,
)
from normalizer.path_resolver import ABSENT
from normalizer.severity import map_severity
from normalizer.stringifier import stringify_properties, to_property_text

logger = logging.getLogger(__name__)

MESSAGE_BASE_TYPE = "MessageData"
NULL_MESSAGE = "Null"

# Record fields that map onto envelope attributes rather than properties.
ENVELOPE_FIELDS = ("name", "time", "iKey", "tags", "data", "ver", "sampleRate", "seq", "flags")


class EnvelopeBuilder:
    """Turns records into envelopes according to a loaded NormalizerConfig."""

    def __init__(self, config: NormalizerConfig, log=None):
        self._config = config
        self._tags = ContextTagResolver(config.context_tag_sources)
        self._log = log if log is not None else logger

    @property
    def config(self) -> NormalizerConfig:
        return self._config

    def build(self, record: Mapping, timestamp) -> Envelope:
        """Build the envelope for *record* observed at *timestamp*.

        With standard schema enabled, records that fail classification are
        logged at debug level and built as freeform message telemetry.
        """
        if not isinstance(record, Mapping):
            record = {}

        if self._config.standard_schema:
            classification = classify(record)
            if classification.is_standard:
                return self.build_standard(record, timestamp)
            self._log.debug(classification.explain())

        return self.build_freeform(record, timestamp)

    def build_standard(self, record: Mapping, timestamp) -> Envelope:
        data = record["data"]
        base_type = data["baseType"]
        base_data = _plain_copy(data["baseData"])

        name = record.get("name")
        if not name:
            name = envelope_name(self._config.instrumentation_key, base_type)

        resolution = self._tags.resolve(record)
        tags = filter_known_tags(record.get("tags"))
        tags.update(resolution.tags)

        excluded = set(ENVELOPE_FIELDS) | resolution.consumed
        extras = {k: v for k, v in record.items() if k not in excluded}

        existing = base_data.get("properties")
        properties = _property_bag(existing if isinstance(existing, Mapping) else {})
        properties.update(_property_bag(extras))
        base_data["properties"] = properties

        return Envelope(
            instrumentation_key=self._config.instrumentation_key,
            time=self._resolve_time(record, "time", timestamp),
            name=to_property_text(name),
            tags=tags,
            data=EnvelopeData(base_type=base_type, base_data=base_data),
            ver=record.get("ver") or 1,
            sample_rate=record.get("sampleRate"),
            seq=record.get("seq"),
            flags=record.get("flags"),
        )

    def build_freeform(self, record: Mapping, timestamp) -> Envelope:
        cfg = self._config

        message = record.get(cfg.message_property)
        message = NULL_MESSAGE if message is None else to_property_text(message)

        severity_token = ABSENT
        if cfg.severity_property:
            severity_token = record.get(cfg.severity_property, ABSENT)
        severity = map_severity(severity_token, cfg.severity_mapping, cfg.default_severity)

        resolution = self._tags.resolve(record)
        tags = {SDK_VERSION_TAG: SDK_VERSION}
        tags.update(resolution.tags)

        excluded = {cfg.message_property, cfg.time_property, cfg.severity_property}
        excluded |= resolution.consumed
        extras = {k: v for k, v in record.items() if k not in excluded}

        base_data = {
            "ver": 2,
            "message": message,
            "severityLevel": severity,
            "properties": _property_bag(extras),
        }
        return Envelope(
            instrumentation_key=cfg.instrumentation_key,
            time=self._resolve_time(record, cfg.time_property, timestamp),
            name=envelope_name(cfg.instrumentation_key, MESSAGE_BASE_TYPE),
            tags=tags,
            data=EnvelopeData(base_type=MESSAGE_BASE_TYPE, base_data=base_data),
        )

    def _resolve_time(self, record: Mapping, field_name: str | None, timestamp) -> str:
        # A record-supplied time wins and is passed through without validation.
        if field_name:
            value = record.get(field_name)
            if value is not None:
                return to_property_text(value)
        return format_timestamp(timestamp)


def _plain_copy(value):
    """Deep copy that turns any Mapping into a dict and any list or tuple into a list."""
    if isinstance(value, Mapping):
        return {key: _plain_copy(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain_copy(item) for item in value]
    return value


def _property_bag(record: Mapping) -> dict:
    return {
        str(key): to_property_text(value)
        for key, value in stringify_properties(record).items()
    }
