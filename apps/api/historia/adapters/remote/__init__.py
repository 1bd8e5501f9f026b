"""Adapters for calls to sibling services."""

from .cache import VerificationCache
from .media import HttpMediaReader, RemoteReadError, event_media_url
from .resolver import EntityResolver, HttpEntityResolver, entity_url

__all__ = [
    "EntityResolver",
    "HttpEntityResolver",
    "HttpMediaReader",
    "RemoteReadError",
    "VerificationCache",
    "entity_url",
    "event_media_url",
]
