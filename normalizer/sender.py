"""Telemetry senders the pipeline hands finished envelopes to."""

import json
import sys
from typing import Protocol

from normalizer.models import Envelope


class TelemetrySender(Protocol):
    def send(self, envelope: Envelope) -> None:
        ...


def format_ndjson(envelope: Envelope) -> bytes:
    """Serialize an envelope to compact JSON + newline, encoded as UTF-8."""
    line = json.dumps(envelope.to_dict(), separators=(",", ":"), ensure_ascii=False)
    return (line + "\n").encode("utf-8")


class StreamSender:
    """Writes each envelope as one NDJSON line to a binary stream."""

    def __init__(self, stream=None):
        self._stream = stream if stream is not None else sys.stdout.buffer
        self._sent = 0

    @property
    def sent(self) -> int:
        return self._sent

    def send(self, envelope: Envelope) -> None:
        self._stream.write(format_ndjson(envelope))
        self._stream.flush()
        self._sent += 1


class MemorySender:
    """Keeps envelopes in a list; used by tests and embedding callers."""

    def __init__(self):
        self.envelopes: list[Envelope] = []

    def send(self, envelope: Envelope) -> None:
        self.envelopes.append(envelope)

    def __len__(self) -> int:
        return len(self.envelopes)

    def __getitem__(self, index) -> Envelope:
        return self.envelopes[index]
