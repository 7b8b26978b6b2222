"""Telemetry envelope model handed to the sender."""

import datetime
import math
from dataclasses import dataclass, field

SDK_VERSION = "py:0.1.0"
NAME_PREFIX = "Microsoft.ApplicationInsights"


@dataclass(frozen=True)
class EnvelopeData:
    base_type: str
    base_data: dict = field(default_factory=dict)

    @property
    def properties(self) -> dict:
        return self.base_data.get("properties", {})

    def to_dict(self) -> dict:
        return {"baseType": self.base_type, "baseData": self.base_data}


@dataclass(frozen=True)
class Envelope:
    instrumentation_key: str
    time: str
    name: str
    data: EnvelopeData
    tags: dict = field(default_factory=dict)
    ver: int = 1
    sample_rate: float | None = None
    seq: str | None = None
    flags: int | None = None

    def to_dict(self) -> dict:
        """Render the envelope in the backend's wire field names."""
        d = {
            "ver": self.ver,
            "name": self.name,
            "time": self.time,
        }
        if self.sample_rate is not None:
            d["sampleRate"] = self.sample_rate
        if self.seq is not None:
            d["seq"] = self.seq
        d["iKey"] = self.instrumentation_key
        if self.flags is not None:
            d["flags"] = self.flags
        d["tags"] = dict(self.tags)
        d["data"] = self.data.to_dict()
        return d


def envelope_name(instrumentation_key: str, base_type: str) -> str:
    """Synthesize ``Microsoft.ApplicationInsights.<key>.<type>``.

    The key keeps only its alphanumeric characters; when nothing is left the
    key segment is dropped together with its separator. A trailing ``Data``
    is removed from the type name.
    """
    sanitized = "".join(c for c in instrumentation_key or "" if c.isascii() and c.isalnum())
    short_type = base_type[:-len("Data")] if base_type.endswith("Data") else base_type
    parts = [NAME_PREFIX, sanitized, short_type] if sanitized else [NAME_PREFIX, short_type]
    return ".".join(parts)


def format_timestamp(timestamp) -> str:
    """Format *timestamp* as ``YYYY-MM-DDTHH:MM:SS.fffffffZ`` in UTC.

    Accepts a ``datetime`` (naive values are taken as UTC) or epoch seconds
    as ``int``/``float``.
    """
    if isinstance(timestamp, datetime.datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=datetime.timezone.utc)
        moment = timestamp.astimezone(datetime.timezone.utc)
        ticks = moment.microsecond * 10
    else:
        seconds = math.floor(timestamp)
        ticks = min(round((timestamp - seconds) * 10_000_000), 9_999_999)
        moment = datetime.datetime.fromtimestamp(int(seconds), tz=datetime.timezone.utc)

    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{ticks:07d}Z"
