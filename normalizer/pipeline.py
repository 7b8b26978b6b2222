"""Record pipeline: build an envelope per record and hand it to the sender."""

import datetime
import json
import logging

from normalizer.config import NormalizerConfig
from normalizer.envelope_builder import EnvelopeBuilder
from normalizer.models import Envelope

logger = logging.getLogger(__name__)


class EnvelopePipeline:
    """Feeds records through an EnvelopeBuilder into a TelemetrySender."""

    def __init__(self, config: NormalizerConfig, sender, log=None):
        self._builder = EnvelopeBuilder(config, log=log)
        self._sender = sender
        self._processed = 0
        self._skipped = 0

    @property
    def builder(self) -> EnvelopeBuilder:
        return self._builder

    def process(self, record: dict, timestamp=None) -> Envelope:
        """Build and send one envelope. *timestamp* defaults to now (UTC)."""
        if timestamp is None:
            timestamp = datetime.datetime.now(datetime.timezone.utc)
        envelope = self._builder.build(record, timestamp)
        self._sender.send(envelope)
        self._processed += 1
        return envelope

    def process_lines(self, lines, timestamp=None) -> int:
        """Process NDJSON lines. Return number of envelopes sent.

        Lines may be str or bytes. Blank lines are ignored; lines that are
        not UTF-8 JSON objects are logged and counted as skipped.
        """
        sent = 0
        for line in lines:
            if isinstance(line, bytes):
                try:
                    line = line.decode("utf-8")
                except UnicodeDecodeError:
                    logger.warning("Skipping line that is not valid UTF-8: %r", line[:100])
                    self._skipped += 1
                    continue
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping unparseable line: %s", line[:100])
                self._skipped += 1
                continue
            if not isinstance(record, dict):
                logger.warning("Skipping non-object record: %s", line[:100])
                self._skipped += 1
                continue
            self.process(record, timestamp)
            sent += 1
        return sent

    def stats(self) -> dict:
        return {"processed": self._processed, "skipped": self._skipped}
