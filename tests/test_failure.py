"""
Tests for failure classification.

Every rejection the engine raises is a KnownError that converts to a
structured FailureDetail.
"""

import pytest

from cardethics.models.failure import (
    FailureDetail,
    FailureKind,
    InsufficientCatalogError,
    InvalidDeckInputError,
    KnownError,
    VoteValidationError,
)


class TestKnownErrors:
    def test_to_detail(self) -> None:
        error = KnownError(
            kind=FailureKind.UNKNOWN,
            message="Something specific went wrong",
            detail="extra",
            suggestion="try again",
        )

        detail = error.to_detail()

        assert isinstance(detail, FailureDetail)
        assert detail.kind == FailureKind.UNKNOWN
        assert detail.message == "Something specific went wrong"
        assert detail.detail == "extra"
        assert detail.suggestion == "try again"

    @pytest.mark.parametrize(
        "error",
        [
            VoteValidationError(FailureKind.SELF_COMPARISON, "same card"),
            InvalidDeckInputError("bad target"),
            InsufficientCatalogError(1),
        ],
    )
    def test_engine_errors_are_known(self, error: KnownError) -> None:
        assert isinstance(error, KnownError)
        assert error.to_detail().suggestion

    def test_vote_validation_error_carries_field(self) -> None:
        error = VoteValidationError(
            FailureKind.WINNER_NOT_CANDIDATE, "not a candidate", field="winnerCardId"
        )

        assert error.field == "winnerCardId"
        assert str(error) == "not a candidate"

    def test_invalid_deck_input_kind(self) -> None:
        assert InvalidDeckInputError("bad").kind == FailureKind.INVALID_INPUT

    def test_detail_serializes(self) -> None:
        dumped = InsufficientCatalogError(0).to_detail().model_dump(mode="json")

        assert dumped["kind"] == "insufficient_catalog"
        assert dumped["message"] == "Not enough cards available. Found 0 cards."
