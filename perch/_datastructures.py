"""
Core data structures for Perch request handling.

Provides:
- MultiDict: Multi-value mapping for query parameters
- Headers: Case-insensitive header access
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple


# ============================================================================
# MultiDict
# ============================================================================

class MultiDict(Mapping[str, List[str]]):
    """
    Read-only mapping that keeps every value of a repeated key.

    ``get()`` and ``to_dict()`` expose the first value, which is what
    query bindings see.
    """

    def __init__(self, items: Optional[List[Tuple[str, str]]] = None):
        self._data: Dict[str, List[str]] = {}
        for key, value in items or []:
            self._data.setdefault(key, []).append(value)

    def __getitem__(self, key: str) -> List[str]:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MultiDict({self._data})"

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for a key."""
        values = self._data.get(key)
        return values[0] if values else default

    def to_dict(self) -> Dict[str, str]:
        """Key -> first value."""
        return {k: v[0] for k, v in self._data.items()}


# ============================================================================
# Headers
# ============================================================================

@dataclass
class Headers:
    """Case-insensitive view over raw ASGI header pairs."""

    raw: List[Tuple[bytes, bytes]] = field(default_factory=list)
    _index: Dict[str, List[Tuple[bytes, bytes]]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._index = {}
        for name, value in self.raw:
            key = name.decode("latin-1").lower()
            self._index.setdefault(key, []).append((name, value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for header (case-insensitive)."""
        pairs = self._index.get(name.lower())
        if pairs:
            return pairs[0][1].decode("latin-1")
        return default

    def to_dict(self) -> Dict[str, str]:
        """
        Lower-cased name -> first value.

        This is the shape handed to header schemas, so keys are
        normalized regardless of how the client cased them.
        """
        return {key: pairs[0][1].decode("latin-1") for key, pairs in self._index.items()}

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._index
