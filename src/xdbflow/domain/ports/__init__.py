"""Domain port definitions for adapters."""

from __future__ import annotations

from .gateway import CreateResult, DeleteResult, StoreGateway

__all__ = ["CreateResult", "DeleteResult", "StoreGateway"]
