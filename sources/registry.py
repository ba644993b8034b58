from __future__ import annotations

from typing import Callable, Dict, List

from sources.base import ContactSource


_REGISTRY: Dict[str, Callable[[], ContactSource]] = {}


def register(name: str, factory: Callable[[], ContactSource]) -> None:
    """Make a contact source selectable by name (``ingest --source NAME``)."""
    _REGISTRY[name] = factory


def get_source(name: str) -> ContactSource:
    try:
        factory = _REGISTRY[name]
    except KeyError:
        known = ", ".join(source_names()) or "none"
        raise KeyError(f"Unknown source: {name} (known: {known})") from None
    return factory()


def source_names() -> List[str]:
    return sorted(_REGISTRY)
