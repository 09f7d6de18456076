# modules/rcip_jobs/lib/extractors/__init__.py
from __future__ import annotations

# Importing the site modules registers every supported community.
from . import british_columbia, ontario, prairies  # noqa: F401
from .base import PostingSequence, SiteExtractor
from .cards import CardExtractor
from .registry import all_extractors, get, register, resolve

__all__ = [
    "CardExtractor",
    "PostingSequence",
    "SiteExtractor",
    "all_extractors",
    "get",
    "register",
    "resolve",
]
