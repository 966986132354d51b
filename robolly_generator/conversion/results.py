"""Value object returned by every converter."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ConversionResult:
    """Converted media plus the labels used to name and describe it."""
    data: bytes
    format: str
    extension: str
    mime_type: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.data)
