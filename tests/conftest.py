"""Shared pytest fixtures for the normalizer test suite."""

import datetime

import pytest

from normalizer.config import NormalizerConfig
from normalizer.envelope_builder import EnvelopeBuilder
from normalizer.pipeline import EnvelopePipeline
from normalizer.sender import MemorySender


@pytest.fixture()
def event_time() -> datetime.datetime:
    return datetime.datetime(2011, 1, 2, 13, 14, 15, tzinfo=datetime.timezone.utc)


@pytest.fixture()
def request_record() -> dict:
    return {
        "name": "telemetry name",
        "data": {"baseType": "RequestData", "baseData": {}},
    }


@pytest.fixture()
def make_builder():
    def _make(**settings) -> EnvelopeBuilder:
        settings.setdefault("instrumentation_key", "ikey")
        return EnvelopeBuilder(NormalizerConfig.from_dict(settings))
    return _make


@pytest.fixture()
def sender() -> MemorySender:
    return MemorySender()


@pytest.fixture()
def make_pipeline(sender):
    def _make(**settings) -> EnvelopePipeline:
        settings.setdefault("instrumentation_key", "ikey")
        return EnvelopePipeline(NormalizerConfig.from_dict(settings), sender)
    return _make
