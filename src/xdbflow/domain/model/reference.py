"""Reference data: named catalog entries such as goal definitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID


@dataclass(frozen=True, slots=True, kw_only=True)
class ReferenceDefinition:
    type_name: str
    key: str
    display_name: str
    id: UUID | None = None
    culture: str = "en"
