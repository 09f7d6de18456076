from __future__ import annotations

from ..errors import UnknownTargetError
from ..utils import normalize_name
from .base import SiteExtractor

# Global in-process registry: normalized community name -> extractor instance
_REGISTRY: dict[str, SiteExtractor] = {}


def register(extractor: SiteExtractor) -> SiteExtractor:
    """
    Register a site extractor under its target's community name.
    Re-registering the same instance is a no-op; a different one is rejected.
    """
    community = extractor.identify().community
    key = normalize_name(community)
    if not key:
        raise ValueError(f"Cannot register extractor {extractor!r}: empty community name.")
    if key in _REGISTRY and _REGISTRY[key] is not extractor:
        raise ValueError(f"Community {community!r} already registered to {_REGISTRY[key]!r}.")
    _REGISTRY[key] = extractor
    return extractor


def get(community: str) -> SiteExtractor:
    """
    Look up an extractor by community name (case-insensitive, whitespace-normalized).
    Raises UnknownTargetError if not found.
    """
    return resolve(community, list(_REGISTRY.values()))


def resolve(community: str, extractors: list[SiteExtractor]) -> SiteExtractor:
    """Exact normalized-name match against an explicit extractor list."""
    key = normalize_name(community)
    for ex in extractors:
        if normalize_name(ex.identify().community) == key:
            return ex
    raise UnknownTargetError(f"No site extractor for community {community!r}.")


def all_extractors() -> list[SiteExtractor]:
    """All registered extractors, in registration order."""
    return list(_REGISTRY.values())
