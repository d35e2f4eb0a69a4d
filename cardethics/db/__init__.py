from cardethics.db.rating_store import InMemoryRatingStore, RatingStore, get_many

__all__ = [
    "InMemoryRatingStore",
    "RatingStore",
    "get_many",
]
