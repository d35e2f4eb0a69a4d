from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="CARDETHICS_")

    app_name: str = "CardEthics"
    debug: bool = False
    log_level: str = "INFO"

    # Aggregated tables written by jobs/build_arena_stats.py
    arena_levels_path: str = "data/arena_levels.json"
    card_win_rates_path: str = "data/card_win_rates.json"

    # Clan war uses four simultaneous decks
    war_deck_count: int = 4


settings = Settings()


# =============================================================================
# RATING CONSTANTS
# =============================================================================

# Baseline rating: cards start here (ethically neutral)
ELO_NEUTRAL = 1500.0

# Logistic scale for expected score and tanh scale for ethics score
ELO_SENSITIVITY = 400.0

# Base rating change per vote for a card with no history
ELO_BASE_CHANGE = 32.0

# Floor for the volatility schedule (mature cards)
ELO_MIN_CHANGE = 8.0

# Applied on top of K for every update
ELO_CHANGE_MULTIPLIER = 1.3

# Ethics scores live in the open interval (-ETHICS_SCALE, +ETHICS_SCALE)
ETHICS_SCALE = 2.0


# =============================================================================
# DECK CONSTRUCTION CONSTANTS
# =============================================================================

DECK_SIZE = 8

EVOLUTION_SLOTS = (0, 1)
HERO_SLOTS = (2, 3)
BASE_SLOTS = (4, 5, 6, 7)

# Highest normalized level (max level of a common card)
COMMON_MAX_LEVEL = 16

# Used when an arena has no historical average level
DEFAULT_ARENA_TARGET_LEVEL = 16.0

# Elixir curve the greedy fill steers towards
TARGET_AVERAGE_ELIXIR = 3.6

# Level-agnostic cards may sit this many levels below the regular floor
LEVEL_AGNOSTIC_ALLOWANCE = 2

# Used as the tie-break value for cards with no recorded win rate
NEUTRAL_WIN_RATE = 0.5
