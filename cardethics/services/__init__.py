"""
CardEthics services.

Business logic for voting, card ratings, player ethics, and deck building.
"""

from cardethics.services.card_ratings import (
    ComparisonCard,
    RatedCard,
    card_ethics_score,
    list_rated_cards,
    pick_comparison_pair,
)
from cardethics.services.deck_builder import SpecialSlotQuota, average_elixir, build_deck
from cardethics.services.player_ethics import (
    PlayerEthics,
    calculate_player_ethics,
    donation_score,
    special_slot_layout,
)
from cardethics.services.taxonomy import DEFAULT_TAXONOMY, CardTaxonomy, Category
from cardethics.services.vote_processor import VoteProcessor
from cardethics.services.war_decks import build_war_decks, build_win_condition_decks

__all__ = [
    "DEFAULT_TAXONOMY",
    "CardTaxonomy",
    "Category",
    "ComparisonCard",
    "PlayerEthics",
    "RatedCard",
    "SpecialSlotQuota",
    "VoteProcessor",
    "average_elixir",
    "build_deck",
    "build_war_decks",
    "build_win_condition_decks",
    "calculate_player_ethics",
    "card_ethics_score",
    "donation_score",
    "list_rated_cards",
    "pick_comparison_pair",
    "special_slot_layout",
]
