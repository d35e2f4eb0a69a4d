from cardethics.models.card import Card, CardVariant, Rarity
from cardethics.models.deck import (
    BuiltDeck,
    DeckOption,
    WarDeckStrategy,
    WinConditionCategory,
    WinConditionDeckSet,
)
from cardethics.models.failure import (
    FailureDetail,
    FailureKind,
    InsufficientCatalogError,
    InvalidDeckInputError,
    KnownError,
    VoteValidationError,
)
from cardethics.models.owned_card import OwnedCard, UnlockState, normalize_level
from cardethics.models.rating import CardRating, RatingKey, coerce_rating_record
from cardethics.models.vote import RatingDelta, VoteRequest, VoteResult, parse_vote_request

__all__ = [
    "BuiltDeck",
    "Card",
    "CardRating",
    "CardVariant",
    "DeckOption",
    "FailureDetail",
    "FailureKind",
    "InsufficientCatalogError",
    "InvalidDeckInputError",
    "KnownError",
    "OwnedCard",
    "RatingDelta",
    "RatingKey",
    "Rarity",
    "UnlockState",
    "VoteRequest",
    "VoteResult",
    "VoteValidationError",
    "WarDeckStrategy",
    "WinConditionCategory",
    "WinConditionDeckSet",
    "coerce_rating_record",
    "normalize_level",
    "parse_vote_request",
]
