"""Record models for the search corpus."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

# Names containing one of these read as "X for Y" / "X - Y" extensions
# and get no simplicity bonus when ranked.
_CONNECTIVES: tuple[str, ...] = (" for ", " - ")


@dataclass(frozen=True)
class RawRecord:
    """Unnormalized record as produced by a RecordSource scan."""

    name: str
    description: str = ""
    version: str | None = None
    is_enabled: bool = False
    action_ref: str | None = None
    source_ref: Any = None


@dataclass(frozen=True)
class Record:
    """One searchable entity with precomputed matching fields.

    The lowercase/word fields are derived from ``name`` and ``description``
    in ``__post_init__``. They cannot be passed to the constructor, and
    ``dataclasses.replace()`` recomputes them.

    Attributes:
        position: 0-based scan position; drives ``id`` and tie-breaking.
        source_ref: Opaque handle owned by the source. Not compared, not
            serialized.
    """

    position: int
    name: str
    description: str = ""
    version: str | None = None
    is_enabled: bool = False
    action_ref: str | None = None
    source_ref: Any = field(default=None, compare=False, repr=False)

    id: str = field(init=False)
    name_lower: str = field(init=False, repr=False)
    name_words: tuple[str, ...] = field(init=False, repr=False)
    description_lower: str = field(init=False, repr=False)
    word_count: int = field(init=False, repr=False)
    has_connective: bool = field(init=False, repr=False)

    def __post_init__(self) -> None:
        name_lower = self.name.lower()
        words = tuple(name_lower.split())
        object.__setattr__(self, "id", f"r{self.position}")
        object.__setattr__(self, "name_lower", name_lower)
        object.__setattr__(self, "name_words", words)
        object.__setattr__(self, "description_lower", self.description.lower())
        object.__setattr__(self, "word_count", len(words))
        object.__setattr__(
            self, "has_connective", any(c in name_lower for c in _CONNECTIVES)
        )

    def with_source_ref(self, source_ref: Any) -> Record:
        """Return a copy carrying *source_ref* (derived fields unchanged)."""
        return replace(self, source_ref=source_ref)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form: source fields only, no derived fields or handle."""
        return {
            "position": self.position,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "is_enabled": self.is_enabled,
            "action_ref": self.action_ref,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Record:
        """Rebuild a Record from ``to_dict()`` output.

        Raises:
            KeyError: If ``position`` or ``name`` is missing.
            ValueError: If ``name`` is blank.
        """
        name = str(data["name"]).strip()
        if not name:
            raise ValueError("record name is empty")
        return cls(
            position=int(data["position"]),
            name=name,
            description=str(data.get("description") or ""),
            version=data.get("version") or None,
            is_enabled=bool(data.get("is_enabled", False)),
            action_ref=data.get("action_ref") or None,
        )
