"""Resolve bare keys and ``$.``-rooted paths against a nested record."""

from collections.abc import Mapping

ROOT_MARKER = "$."


class _Absent:
    """Sentinel for a path that does not resolve to any value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


def is_nested_path(path: str) -> bool:
    return path.startswith(ROOT_MARKER)


def resolve(record, path: str):
    """Return the value at *path* in *record*, or ``ABSENT``.

    ``"kubernetes_container_name"`` is a direct top-level lookup, while
    ``"$.kubernetes.container_name"`` descends ``record["kubernetes"]
    ["container_name"]``. Missing segments and non-mapping intermediates
    resolve to ``ABSENT`` instead of raising.
    """
    if not isinstance(record, Mapping):
        return ABSENT

    if not is_nested_path(path):
        return record.get(path, ABSENT)

    current = record
    for segment in path[len(ROOT_MARKER):].split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return ABSENT
        current = current[segment]
    return current
