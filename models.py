"""
Shared data models for the metadata pipeline.

Kept separate from the resolver and formatter to avoid circular imports.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Iterator, Optional, Tuple


@dataclass(frozen=True)
class RatingValues:
    """
    Normalized ratings, one optional slot per known source.

    Field order is the display order. A slot is None when the source had
    no usable value.
    """
    imdb: Any = None
    tmdb: Any = None
    trakt: Any = None
    letterboxd: Any = None
    tomato: Any = None
    metacritic: Any = None

    def present(self) -> Iterator[Tuple[str, Any]]:
        """Yield (field, value) for populated slots, in display order."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                yield f.name, value

    def is_empty(self) -> bool:
        return next(self.present(), None) is None


@dataclass
class MetaResult:
    """Envelope returned to the HTTP layer for a meta request."""
    meta: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire shape: {"meta": record-or-null}."""
        return {"meta": self.meta}
