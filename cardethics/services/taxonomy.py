"""
Card taxonomy - static role classification used by deck construction.

Cards are grouped into overlapping categories: win-condition tiers,
support, damage profile, structures, cycle, mini tanks, spells, and tanks.
The table is data; the order in which deck construction consults the
categories is fixed in deck_builder.

Names are matched in canonical form (see canonical_name) so that upstream
spellings like "X-Bow" and "Mini P.E.K.K.A" resolve.
"""

import re
from collections.abc import Iterable, Mapping
from enum import Enum

from cardethics.models.card import Card
from cardethics.models.deck import WinConditionCategory


class Category(str, Enum):
    """Role tags a card may carry."""

    WIN_CONDITION_OFFENSE = "win_condition_offense"
    WIN_CONDITION_DEFENSE = "win_condition_defense"
    WIN_CONDITION_BEATDOWN = "win_condition_beatdown"
    WIN_CONDITION_SECONDARY = "win_condition_secondary"
    SUPPORT = "support"
    GROUND_DAMAGE = "ground_damage"
    AIR_DAMAGE = "air_damage"
    STRUCTURE = "structure"
    CYCLE = "cycle"
    MINI_TANK = "mini_tank"
    MINI_SPELL = "mini_spell"
    BIG_SPELL = "big_spell"
    PURE_DEFENSE = "pure_defense"
    TANK = "tank"
    LEVEL_AGNOSTIC = "level_agnostic"


# Win-condition tag -> deck style it produces
WIN_CONDITION_STYLES: dict[Category, WinConditionCategory] = {
    Category.WIN_CONDITION_DEFENSE: WinConditionCategory.DEFENSE,
    Category.WIN_CONDITION_BEATDOWN: WinConditionCategory.BEATDOWN,
    Category.WIN_CONDITION_OFFENSE: WinConditionCategory.OFFENSE,
    Category.WIN_CONDITION_SECONDARY: WinConditionCategory.SECONDARY,
}

# Primary win conditions are searched in this order; earlier tiers win ties
PRIMARY_WIN_CONDITION_TIERS: tuple[Category, ...] = (
    Category.WIN_CONDITION_DEFENSE,
    Category.WIN_CONDITION_BEATDOWN,
    Category.WIN_CONDITION_OFFENSE,
)

DEFAULT_CATEGORY_TABLE: dict[Category, frozenset[str]] = {
    Category.WIN_CONDITION_OFFENSE: frozenset(
        {
            "boss bandit",
            "mega knight",
            "goblin giant",
            "balloon",
            "battle ram",
            "giant",
            "royal giant",
            "ram rider",
            "three musketeers",
        }
    ),
    # Siege and control threats
    Category.WIN_CONDITION_DEFENSE: frozenset(
        {"mortar", "hog rider", "royal hogs", "goblin drill", "xbow", "rocket"}
    ),
    Category.WIN_CONDITION_SECONDARY: frozenset(
        {
            "goblin barrel",
            "wall breakers",
            "skeleton barrel",
            "suspicious bush",
            "princess",
            "royal ghost",
            "bandit",
            "prince",
            "dark prince",
            "firecracker",
            "dart goblin",
            "goblin gang",
        }
    ),
    Category.WIN_CONDITION_BEATDOWN: frozenset(
        {"elixir golem", "golem", "lava hound", "electro giant"}
    ),
    # Cards that primarily support pushes
    Category.SUPPORT: frozenset(
        {
            "skeleton dragons",
            "night witch",
            "lumberjack",
            "witch",
            "furnace",
            "electro dragon",
            "mini pekka",
            "battle healer",
            "goblin demolisher",
            "prince",
            "wizard",
            "executioner",
            "sparky",
        }
    ),
    Category.GROUND_DAMAGE: frozenset(
        {
            "little prince",
            "bats",
            "cannon",
            "musketeer",
            "archers",
            "skeleton army",
            "goblin gang",
            "dart goblin",
            "mini pekka",
            "prince",
            "dark prince",
            "hunter",
            "furnace",
            "minion horde",
            "rascals",
            "archer queen",
            "boss bandit",
            "spirit empress",
            "flying machine",
        }
    ),
    Category.AIR_DAMAGE: frozenset(
        {
            "little prince",
            "bats",
            "musketeer",
            "archers",
            "dart goblin",
            "hunter",
            "furnace",
            "minion horde",
            "archer queen",
            "flying machine",
        }
    ),
    Category.STRUCTURE: frozenset(
        {"cannon", "goblin hut", "bomb tower", "tesla", "inferno tower", "barbarian hut"}
    ),
    Category.CYCLE: frozenset(
        {
            "skeletons",
            "ice spirit",
            "fire spirit",
            "heal spirit",
            "electro spirit",
            "spear goblins",
            "goblins",
            "bats",
        }
    ),
    # Cheap, sturdy defenders
    Category.MINI_TANK: frozenset(
        {
            "fisherman",
            "berserker",
            "ice golem",
            "knight",
            "valkyrie",
            "miner",
            "royal ghost",
            "dark prince",
            "golden knight",
            "skeleton king",
            "mighty miner",
        }
    ),
    Category.MINI_SPELL: frozenset(
        {
            "the log",
            "giant snowball",
            "zap",
            "royal delivery",
            "barbarian barrel",
            "rage",
            "goblin curse",
            "vines",
            "earthquake",
        }
    ),
    Category.BIG_SPELL: frozenset(
        {"freeze", "fireball", "poison", "rocket", "lightning", "arrows"}
    ),
    Category.PURE_DEFENSE: frozenset(
        {"ice wizard", "guards", "cannon cart", "fisherman", "little prince", "zappies"}
    ),
    Category.TANK: frozenset(
        {
            "golem",
            "giant",
            "royal giant",
            "goblin giant",
            "electro giant",
            "lava hound",
            "elixir golem",
            "mega knight",
            "pekka",
            "giant skeleton",
            "rune giant",
        }
    ),
    # Useful at any level; allowed further below the arena level floor
    Category.LEVEL_AGNOSTIC: frozenset({"freeze", "rage", "skeletons", "vines"}),
}

_NON_WORD = re.compile(r"[.'’]")
_SPACES = re.compile(r"\s+")


def canonical_name(name: str) -> str:
    """
    Canonical lookup form of a card name.

    Lower-cased, dots and apostrophes removed, hyphens joined, whitespace
    collapsed: "Mini P.E.K.K.A" -> "mini pekka", "X-Bow" -> "xbow".
    """
    lowered = _NON_WORD.sub("", name.lower()).replace("-", "")
    return _SPACES.sub(" ", lowered).strip()


class CardTaxonomy:
    """Membership lookup over a category table."""

    def __init__(self, table: Mapping[Category, Iterable[str]] | None = None) -> None:
        source = DEFAULT_CATEGORY_TABLE if table is None else table
        index: dict[str, set[Category]] = {}
        for category, names in source.items():
            for name in names:
                index.setdefault(canonical_name(name), set()).add(category)
        self._index: dict[str, frozenset[Category]] = {
            name: frozenset(categories) for name, categories in index.items()
        }

    def categories_of(self, name: str) -> frozenset[Category]:
        """Category tags for a card name. Unknown names have no tags."""
        return self._index.get(canonical_name(name), frozenset())

    def has(self, name: str, category: Category) -> bool:
        return category in self.categories_of(name)

    def members(self, category: Category) -> frozenset[str]:
        """Canonical names carrying a category."""
        return frozenset(name for name, tags in self._index.items() if category in tags)

    def classify_catalog(self, cards: Iterable[Card]) -> dict[int, frozenset[Category]]:
        """Resolve categories for every catalog card once, keyed by card id."""
        return {card.id: self.categories_of(card.name) for card in cards}


def win_condition_style(categories: Iterable[Category]) -> WinConditionCategory | None:
    """
    Deck style implied by a card's tags.

    Tiers are consulted in primary order, then secondary.
    """
    tags = set(categories)
    for tier in (*PRIMARY_WIN_CONDITION_TIERS, Category.WIN_CONDITION_SECONDARY):
        if tier in tags:
            return WIN_CONDITION_STYLES[tier]
    return None


DEFAULT_TAXONOMY = CardTaxonomy()
