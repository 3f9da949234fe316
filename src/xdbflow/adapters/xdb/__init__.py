"""Public interface for the xDB HTTP adapter."""

from __future__ import annotations

from .client import XdbHttpGateway
from .schema import EntityPayload, IndexHitPayload, SearchResponse
from .translator import parse_entity, parse_hit

__all__ = [
    "EntityPayload",
    "IndexHitPayload",
    "SearchResponse",
    "XdbHttpGateway",
    "parse_entity",
    "parse_hit",
]
