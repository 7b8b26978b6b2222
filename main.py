"""Entry point: normalize NDJSON log records into telemetry envelopes."""

import argparse
import logging
import sys

from normalizer.config import load_config, load_yaml_config
from normalizer.errors import ConfigurationError
from normalizer.pipeline import EnvelopePipeline
from normalizer.sender import StreamSender

logger = logging.getLogger(__name__)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="log-envelope",
        description="Normalize NDJSON log records into telemetry envelopes.",
    )
    parser.add_argument(
        "files", nargs="*",
        help="NDJSON input files (default: read stdin)",
    )
    parser.add_argument(
        "--config", default=None,
        help="Path to YAML config file",
    )
    parser.add_argument("--instrumentation-key", dest="instrumentation_key", default=None)
    parser.add_argument(
        "--standard-schema", dest="standard_schema",
        action=argparse.BooleanOptionalAction, default=None,
        help="Pass through records already in standard telemetry shape",
    )
    parser.add_argument(
        "--context-tag-sources", dest="context_tag_sources", default=None,
        help="tag:path pairs, e.g. ai.cloud.role:$.kubernetes.container_name",
    )
    parser.add_argument("--time-property", dest="time_property", default=None)
    parser.add_argument("--message-property", dest="message_property", default=None)
    parser.add_argument("--severity-property", dest="severity_property", default=None)
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Diagnostic log level (default: INFO)",
    )
    return parser


def main(argv=None) -> int:
    args = build_cli_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args, load_yaml_config(args.config))
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    pipeline = EnvelopePipeline(config, StreamSender())
    logger.info("Starting normalizer - standard_schema=%s, %d context tag source(s)",
                config.standard_schema, len(config.context_tag_sources))

    if args.files:
        for path in args.files:
            try:
                f = open(path, "rb")
            except FileNotFoundError:
                logger.warning("Input file %s not found, skipping", path)
                continue
            with f:
                pipeline.process_lines(f)
    else:
        pipeline.process_lines(sys.stdin.buffer)

    stats = pipeline.stats()
    logger.info("Normalizer finished: processed=%d, skipped=%d",
                stats["processed"], stats["skipped"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
