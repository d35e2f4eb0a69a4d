"""
Rating store - the only mutable state the engine touches.

The engine depends on a narrow key-value interface keyed by
(card_id, variant). Callers own the store's lifecycle and backing
storage; InMemoryRatingStore is the reference implementation.

Reads never fail: a missing or malformed record reads as the neutral
anchor with zero comparisons.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from cardethics.models.card import CardVariant
from cardethics.models.rating import CardRating, RatingKey, coerce_rating_record


class RatingStore(Protocol):
    """Key-value store of rating records."""

    def get(self, key: RatingKey) -> CardRating:
        """Get the record for a key, neutral if absent."""
        ...

    def set_rating(self, key: RatingKey, rating: float) -> None:
        """Overwrite the rating for a key, creating the record if absent."""
        ...

    def increment_comparisons(self, key: RatingKey) -> None:
        """Add one to the comparison count for a key, creating the record if absent."""
        ...

    def reset(self, key: RatingKey) -> None:
        """Administrative reset to the neutral anchor with zero comparisons."""
        ...


class InMemoryRatingStore:
    """Dict-backed RatingStore."""

    def __init__(self, records: Mapping[RatingKey, CardRating] | None = None) -> None:
        self._records: dict[RatingKey, CardRating] = dict(records or {})

    def __contains__(self, key: RatingKey) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, key: RatingKey) -> CardRating:
        return self._records.get(key, CardRating.neutral())

    def set_rating(self, key: RatingKey, rating: float) -> None:
        self._records[key] = self.get(key).with_rating(rating)

    def increment_comparisons(self, key: RatingKey) -> None:
        self._records[key] = self.get(key).incremented()

    def reset(self, key: RatingKey) -> None:
        self._records[key] = CardRating.neutral()

    def get_many(self, keys: Iterable[RatingKey]) -> dict[RatingKey, CardRating]:
        """Batch read. Every requested key is present in the result."""
        return {key: self.get(key) for key in keys}

    def items(self) -> list[tuple[RatingKey, CardRating]]:
        return list(self._records.items())

    @classmethod
    def from_records(cls, documents: Iterable[Mapping[str, Any]]) -> "InMemoryRatingStore":
        """
        Seed a store from stored rating documents.

        Documents use the {cardId, variant, elo, matchups} shape. Documents
        without a usable card id or variant are skipped; malformed rating
        fields read as neutral.
        """
        records: dict[RatingKey, CardRating] = {}
        for document in documents:
            key = _key_from_document(document)
            if key is None:
                continue
            records[key] = coerce_rating_record(document)
        return cls(records)


def get_many(store: RatingStore, keys: Iterable[RatingKey]) -> dict[RatingKey, CardRating]:
    """Batch read for any RatingStore, using its own get_many when present."""
    batch = getattr(store, "get_many", None)
    if callable(batch):
        return dict(batch(keys))
    return {key: store.get(key) for key in keys}


def _key_from_document(document: Mapping[str, Any]) -> RatingKey | None:
    raw_id = document.get("cardId", document.get("card_id"))
    raw_variant = document.get("variant", CardVariant.BASE.value)
    try:
        return RatingKey(int(raw_id), CardVariant(raw_variant))
    except (TypeError, ValueError):
        return None
