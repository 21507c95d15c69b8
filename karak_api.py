from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from typing import Collection, Iterable, Mapping, Optional, Tuple

DEFAULT_RULES_JSON = os.path.join(os.path.dirname(os.path.abspath(__file__)), "karak_rules.json")

TEA = "tea"
MILK = "milk"
SUGAR = "sugar"
CARDAMOM = "cardamom"

RECIPE_SIZE = 4

PATIENCE_NORMAL = "normal"
PATIENCE_WARNING = "warning"
PATIENCE_DANGER = "danger"

WARNING_THRESHOLD = 50
DANGER_THRESHOLD = 20


def load_json(path: str):
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


@dataclass(frozen=True)
class Recipe:
    """Ordered list of ingredient ids a drink needs."""

    name: str
    ingredients: Tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.ingredients) != RECIPE_SIZE:
            raise ValueError(
                f"Recipe {self.name!r} must list exactly {RECIPE_SIZE} ingredients"
            )
        if len(set(self.ingredients)) != len(self.ingredients):
            raise ValueError(f"Recipe {self.name!r} lists an ingredient twice")

    def __len__(self) -> int:
        return len(self.ingredients)

    def __contains__(self, ingredient_id: object) -> bool:
        return ingredient_id in self.ingredients

    def matches(self, contents: Iterable[str]) -> bool:
        """Return True when ``contents`` holds exactly this recipe's ingredients.

        Order is ignored and repeated ids collapse, so ``tea, tea, milk,
        sugar`` only covers three distinct ingredients and never matches.
        """

        return set(contents) == set(self.ingredients)


KARAK_RECIPE = Recipe("Karak", (TEA, MILK, SUGAR, CARDAMOM))


@dataclass(frozen=True)
class GameConfig:
    pot_capacity: int = 4
    max_patience: float = 100.0
    tick_ms: int = 200
    base_decay: float = 1.0
    decay_per_day: float = 0.5
    base_earnings: int = 10
    streak_bonus: int = 2
    unhappy_penalty: int = 5
    customers_per_day: int = 3
    first_customer_delay_ms: int = 1000
    next_customer_delay_ms: int = 3000

    def __post_init__(self) -> None:
        if self.pot_capacity <= 0:
            raise ValueError("GameConfig.pot_capacity must be a positive integer")
        if self.max_patience <= 0:
            raise ValueError("GameConfig.max_patience must be positive")
        if self.tick_ms <= 0:
            raise ValueError("GameConfig.tick_ms must be a positive integer")
        if self.base_decay <= 0 or self.decay_per_day < 0:
            raise ValueError("GameConfig decay values must be positive")
        if self.customers_per_day <= 0:
            raise ValueError("GameConfig.customers_per_day must be a positive integer")
        if self.unhappy_penalty < 0:
            raise ValueError("GameConfig.unhappy_penalty cannot be negative")
        if self.first_customer_delay_ms < 0 or self.next_customer_delay_ms < 0:
            raise ValueError("GameConfig customer delays cannot be negative")

    def decay_rate(self, day: int) -> float:
        """Patience lost per tick on ``day``; later days drain faster."""

        return self.base_decay + day * self.decay_per_day

    def earnings_for(self, streak: int) -> int:
        return self.base_earnings + streak * self.streak_bonus

    @classmethod
    def from_mapping(cls, raw: Mapping[str, object]) -> "GameConfig":
        defaults = cls()
        values = {}
        for entry in fields(cls):
            if entry.name not in raw:
                continue
            current = getattr(defaults, entry.name)
            value = raw[entry.name]
            if isinstance(value, bool) or (
                isinstance(current, int) and isinstance(value, float) and not value.is_integer()
            ):
                raise ValueError(f"Invalid value for {entry.name}: {value!r}")
            try:
                values[entry.name] = type(current)(value)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid value for {entry.name}: {value!r}") from None
        return cls(**values)

    @classmethod
    def from_json(cls, path: Optional[str] = None) -> "GameConfig":
        """Load overrides from ``path``; a missing default file means defaults."""

        if path is None:
            path = DEFAULT_RULES_JSON
            if not os.path.exists(path):
                return cls()
        raw = load_json(path)
        if not isinstance(raw, Mapping):
            raise ValueError(f"{path} must contain a JSON object")
        rules = raw.get("rules", raw)
        if not isinstance(rules, Mapping):
            raise ValueError(f"{path}: 'rules' must be a JSON object")
        return cls.from_mapping(rules)


def patience_tier(patience: float, max_patience: float = 100.0) -> str:
    """Colour band for a patience bar: normal, then warning below 50%, danger below 20%."""

    percent = patience * 100.0 / max_patience
    if percent < DANGER_THRESHOLD:
        return PATIENCE_DANGER
    if percent < WARNING_THRESHOLD:
        return PATIENCE_WARNING
    return PATIENCE_NORMAL


def describe_contents(contents: Collection[str]) -> str:
    if not contents:
        return "Status: Empty"
    return f"Contains: {', '.join(contents)}"
