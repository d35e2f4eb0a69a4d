"""
Vote processing - pairwise comparisons into rating updates.

INVARIANTS:
- Validation is complete before any store access; a rejected vote changes nothing
- Both sides of a decided vote are updated against PRE-vote ratings
- A skip changes no rating but counts as a comparison for both sides
- A variant is updated only by votes naming exactly that variant

CONCURRENCY:
The read-modify-write on a pair of records is not atomic. Callers sharing
a store between threads must serialize process() calls per key pair.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from cardethics.analysis.elo import update_rating
from cardethics.db.rating_store import RatingStore
from cardethics.models.card import Card
from cardethics.models.failure import FailureKind, VoteValidationError
from cardethics.models.rating import RatingKey
from cardethics.models.vote import RatingDelta, VoteRequest, VoteResult, parse_vote_request

logger = logging.getLogger(__name__)


class VoteProcessor:
    """
    Applies votes to a rating store.

    Args:
        store: Rating store to read and update
        catalog: Optional card catalog; when given, votes naming unknown
            cards or variants that do not exist are rejected
    """

    def __init__(
        self,
        store: RatingStore,
        catalog: Mapping[int, Card] | Iterable[Card] | None = None,
    ) -> None:
        self.store = store
        if catalog is None or isinstance(catalog, Mapping):
            self.catalog: Mapping[int, Card] | None = catalog
        else:
            self.catalog = {card.id: card for card in catalog}

    def validate(self, request: VoteRequest) -> None:
        """
        Check a vote's structure without touching the store.

        Raises:
            VoteValidationError: On the first violated rule
        """
        if request.card1_id == request.card2_id:
            raise VoteValidationError(
                kind=FailureKind.SELF_COMPARISON,
                message="Cannot vote between two variants of the same card",
                field="card2Id",
                detail=f"card {request.card1_id} appears on both sides",
            )

        if self.catalog is not None:
            _check_catalog(self.catalog, request.card1_key, "card1")
            _check_catalog(self.catalog, request.card2_key, "card2")

        if request.is_skip:
            return

        if request.winner_card_id is None or request.winner_variant is None:
            missing = "winnerCardId" if request.winner_card_id is None else "winnerVariant"
            raise VoteValidationError(
                kind=FailureKind.MISSING_REQUIRED,
                message="Winner must name both a card and a variant",
                field=missing,
            )

        candidates = {
            request.card1_id: request.card1_variant,
            request.card2_id: request.card2_variant,
        }
        if request.winner_card_id not in candidates:
            raise VoteValidationError(
                kind=FailureKind.WINNER_NOT_CANDIDATE,
                message="Winner must be one of the two compared cards",
                field="winnerCardId",
                detail=f"card {request.winner_card_id} was not compared",
            )

        expected = candidates[request.winner_card_id]
        if request.winner_variant != expected:
            raise VoteValidationError(
                kind=FailureKind.VARIANT_MISMATCH,
                message="Winner variant does not match the compared variant",
                field="winnerVariant",
                detail=f"expected {expected.value}, got {request.winner_variant.value}",
            )

    def process(self, request: VoteRequest | dict[str, Any]) -> VoteResult:
        """
        Validate a vote and apply it.

        Args:
            request: A VoteRequest, or a raw payload in the camelCase wire shape

        Returns:
            VoteResult describing the applied change

        Raises:
            VoteValidationError: If the vote is rejected; the store is untouched
        """
        if not isinstance(request, VoteRequest):
            request = parse_vote_request(request)
        self.validate(request)

        if request.is_skip:
            return self._apply_skip(request)

        winner_key = RatingKey(request.winner_card_id, request.winner_variant)  # type: ignore[arg-type]
        loser_key = request.card2_key if winner_key == request.card1_key else request.card1_key
        return self._apply_decision(winner_key, loser_key)

    def _apply_skip(self, request: VoteRequest) -> VoteResult:
        changes = []
        for key in (request.card1_key, request.card2_key):
            before = self.store.get(key)
            self.store.increment_comparisons(key)
            changes.append(_delta(key, before.rating, before.rating, before.comparison_count))

        logger.info("Vote skipped: %s vs %s", request.card1_key, request.card2_key)
        return VoteResult(
            skipped=True,
            changes=changes,
            message="Vote skipped, no ratings changed",
        )

    def _apply_decision(self, winner_key: RatingKey, loser_key: RatingKey) -> VoteResult:
        winner = self.store.get(winner_key)
        loser = self.store.get(loser_key)

        new_winner = update_rating(
            winner.rating, loser.rating, won=True, comparison_count=winner.comparison_count
        )
        new_loser = update_rating(
            loser.rating, winner.rating, won=False, comparison_count=loser.comparison_count
        )

        self.store.set_rating(winner_key, new_winner)
        self.store.increment_comparisons(winner_key)
        self.store.set_rating(loser_key, new_loser)
        self.store.increment_comparisons(loser_key)

        winner_delta = _delta(winner_key, winner.rating, new_winner, winner.comparison_count)
        loser_delta = _delta(loser_key, loser.rating, new_loser, loser.comparison_count)

        logger.info(
            "Vote: %s %.1f -> %.1f beat %s %.1f -> %.1f",
            winner_key,
            winner.rating,
            new_winner,
            loser_key,
            loser.rating,
            new_loser,
        )
        return VoteResult(
            skipped=False,
            winner=winner_delta,
            loser=loser_delta,
            changes=[winner_delta, loser_delta],
        )


def _delta(
    key: RatingKey, previous_rating: float, new_rating: float, previous_count: int
) -> RatingDelta:
    return RatingDelta(
        card_id=key.card_id,
        variant=key.variant,
        previous_rating=previous_rating,
        new_rating=new_rating,
        previous_count=previous_count,
        new_count=previous_count + 1,
    )


def _check_catalog(catalog: Mapping[int, Card], key: RatingKey, side: str) -> None:
    card = catalog.get(key.card_id)
    if card is None:
        raise VoteValidationError(
            kind=FailureKind.INVALID_INPUT,
            message=f"Unknown card {key.card_id}",
            field=f"{side}Id",
        )
    if not card.has_variant(key.variant):
        raise VoteValidationError(
            kind=FailureKind.UNKNOWN_VARIANT,
            message=f"{card.name} has no {key.variant.value} variant",
            field=f"{side}Variant",
        )
