"""Global dashboard filter snapshot and merging into requests."""

from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class FilterSnapshotProvider(Protocol):
    """Read-only view of the filters currently active in the dashboard."""

    def snapshot(self) -> Dict[str, Any]:
        ...


class StaticFilterProvider:
    """In-memory filter snapshot, updated by whoever owns the filter state."""

    def __init__(self, filters: Optional[Mapping[str, Any]] = None):
        self._filters: Dict[str, Any] = dict(filters or {})

    def update(self, **filters: Any) -> None:
        self._filters.update(filters)

    def replace(self, filters: Mapping[str, Any]) -> None:
        self._filters = dict(filters)

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._filters)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, tuple, set, dict)) and len(value) == 0)


def merge_filters(
    global_filters: Optional[Mapping[str, Any]],
    request_filters: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """Global snapshot first, empty values dropped; explicit request filters win on conflicts."""
    merged = {k: v for k, v in (global_filters or {}).items() if not _is_empty(v)}
    merged.update(request_filters or {})
    return merged
