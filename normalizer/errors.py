"""Errors raised while loading normalizer configuration."""


class ConfigurationError(ValueError):
    """Invalid configuration detected before any record is processed."""
