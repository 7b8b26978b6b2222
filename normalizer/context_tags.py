"""Populate envelope context tags from configured record paths."""

import json
from collections.abc import Mapping
from dataclasses import dataclass

from normalizer.errors import ConfigurationError
from normalizer.path_resolver import ABSENT, is_nested_path, resolve
from normalizer.stringifier import to_property_text

SDK_VERSION_TAG = "ai.internal.sdkVersion"

CONTEXT_TAG_KEYS = frozenset({
    "ai.application.ver",
    "ai.cloud.role",
    "ai.cloud.roleInstance",
    "ai.device.id",
    "ai.device.locale",
    "ai.device.model",
    "ai.device.oemName",
    "ai.device.osVersion",
    "ai.device.type",
    "ai.internal.agentVersion",
    "ai.internal.nodeName",
    SDK_VERSION_TAG,
    "ai.location.ip",
    "ai.operation.correlationVector",
    "ai.operation.id",
    "ai.operation.name",
    "ai.operation.parentId",
    "ai.operation.syntheticSource",
    "ai.session.id",
    "ai.session.isFirst",
    "ai.user.accountId",
    "ai.user.authUserId",
    "ai.user.id",
})


@dataclass(frozen=True)
class ContextTagSource:
    tag_key: str
    source_path: str

    @property
    def is_nested(self) -> bool:
        return is_nested_path(self.source_path)


@dataclass(frozen=True)
class TagResolution:
    tags: dict
    consumed: frozenset


def validate_tag_key(tag_key: str) -> None:
    if tag_key not in CONTEXT_TAG_KEYS:
        raise ConfigurationError(f"Context tag '{tag_key}' is invalid!")


def parse_context_tag_sources(raw) -> tuple:
    """Build an ordered tuple of ContextTagSource from configuration input.

    Accepts a mapping ``{tag_key: source_path}``, a JSON object string, or
    the compact ``tag:path,tag:path`` form, or a list of ``tag:path`` strings
    and ``[tag, path]`` pairs. Raises ConfigurationError for
    unknown tag keys or unreadable input.
    """
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        pairs = [_parse_item(item) for item in raw]
    elif isinstance(raw, Mapping):
        pairs = list(raw.items())
    elif isinstance(raw, str):
        pairs = _parse_text(raw)
    else:
        raise ConfigurationError(
            f"Unsupported context_tag_sources value: {raw!r}"
        )

    sources = []
    for tag_key, source_path in pairs:
        tag_key = str(tag_key).strip()
        validate_tag_key(tag_key)
        sources.append(ContextTagSource(tag_key, str(source_path).strip()))
    return tuple(sources)


def _parse_item(item) -> tuple:
    """One list entry: a ContextTagSource, a ``tag:path`` string or a 2-item pair."""
    if isinstance(item, ContextTagSource):
        return item.tag_key, item.source_path
    if isinstance(item, str):
        pairs = _parse_text(item)
        if len(pairs) == 1 and not item.strip().startswith("{"):
            return pairs[0]
    elif isinstance(item, (list, tuple)) and len(item) == 2:
        return item[0], item[1]
    raise ConfigurationError(
        f"Context tag source {item!r} must look like tag:path or [tag, path]"
    )


def _parse_text(text: str) -> list:
    stripped = text.strip()
    if not stripped:
        return []
    if stripped.startswith("{"):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"context_tag_sources is not valid JSON: {exc}"
            ) from exc
        if not isinstance(parsed, dict):
            raise ConfigurationError("context_tag_sources must be a JSON object")
        return list(parsed.items())

    pairs = []
    for item in stripped.split(","):
        item = item.strip()
        if not item:
            continue
        tag_key, sep, source_path = item.partition(":")
        if not sep or not source_path.strip():
            raise ConfigurationError(
                f"Context tag source '{item}' must look like tag:path"
            )
        pairs.append((tag_key, source_path))
    return pairs


class ContextTagResolver:
    """Resolves the configured tag sources against one record at a time."""

    def __init__(self, sources=()):
        self._sources = parse_context_tag_sources(sources)

    @property
    def sources(self) -> tuple:
        return self._sources

    def resolve(self, record) -> TagResolution:
        """Return the tags found in *record* and the top-level keys consumed.

        Missing or null values leave their tag out entirely. Only direct
        top-level sources are reported as consumed; a nested source leaves its
        enclosing field in place.
        """
        tags = {}
        consumed = set()
        for source in self._sources:
            if not source.is_nested:
                consumed.add(source.source_path)
            value = resolve(record, source.source_path)
            if value is ABSENT or value is None:
                continue
            tags[source.tag_key] = to_property_text(value)
        return TagResolution(tags=tags, consumed=frozenset(consumed))


def filter_known_tags(tags) -> dict:
    """Keep only allow-listed keys of a record-supplied tag mapping."""
    if not isinstance(tags, Mapping):
        return {}
    return {
        str(key): to_property_text(value)
        for key, value in tags.items()
        if key in CONTEXT_TAG_KEYS and value is not None
    }
