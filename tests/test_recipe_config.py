import json
import random
from itertools import permutations
from pathlib import Path

import pytest

from karak_api import (
    DEFAULT_RULES_JSON,
    KARAK_RECIPE,
    PATIENCE_DANGER,
    PATIENCE_NORMAL,
    PATIENCE_WARNING,
    GameConfig,
    Recipe,
    describe_contents,
    patience_tier,
)
from karak_session import MAX_SEED_VALUE, GameSession, order_seed
from karak_scheduler import ManualScheduler


def test_karak_recipe_is_four_distinct_ingredients() -> None:
    assert KARAK_RECIPE.ingredients == ("tea", "milk", "sugar", "cardamom")
    assert len(set(KARAK_RECIPE.ingredients)) == 4


def test_recipe_rejects_duplicates() -> None:
    with pytest.raises(ValueError):
        Recipe("Broken", ("tea", "tea", "milk", "sugar"))


@pytest.mark.parametrize(
    "ingredients",
    [("tea", "milk", "sugar"), ("tea", "milk", "sugar", "cardamom", "saffron"), ()],
)
def test_recipe_must_list_four_ingredients(ingredients) -> None:
    with pytest.raises(ValueError):
        Recipe("Short", ingredients)


def test_every_ordering_of_the_recipe_matches() -> None:
    for ordering in permutations(KARAK_RECIPE.ingredients):
        assert KARAK_RECIPE.matches(ordering)


@pytest.mark.parametrize(
    "contents",
    [
        ("tea", "tea", "milk", "sugar"),
        ("tea", "milk", "sugar"),
        ("tea", "milk", "sugar", "cardamom", "saffron"),
        (),
    ],
)
def test_incomplete_or_extra_sets_do_not_match(contents) -> None:
    assert not KARAK_RECIPE.matches(contents)


@pytest.mark.parametrize(
    "patience, tier",
    [
        (100, PATIENCE_NORMAL),
        (50, PATIENCE_NORMAL),
        (49.9, PATIENCE_WARNING),
        (20, PATIENCE_WARNING),
        (19.5, PATIENCE_DANGER),
        (-3, PATIENCE_DANGER),
    ],
)
def test_patience_tier_thresholds(patience: float, tier: str) -> None:
    assert patience_tier(patience) == tier


def test_patience_tier_scales_with_maximum() -> None:
    assert patience_tier(0.5, 1.0) == PATIENCE_NORMAL
    assert patience_tier(0.3, 1.0) == PATIENCE_WARNING
    assert patience_tier(0.1, 1.0) == PATIENCE_DANGER


def test_describe_contents() -> None:
    assert describe_contents(()) == "Status: Empty"
    assert describe_contents(("tea", "milk")) == "Contains: tea, milk"


def test_default_config_matches_game_rules() -> None:
    config = GameConfig()
    assert config.decay_rate(1) == 1.5
    assert config.decay_rate(3) == 2.5
    assert config.earnings_for(1) == 12
    assert config.earnings_for(4) == 18
    assert config.tick_ms == 200
    assert config.next_customer_delay_ms == 3000


def test_shipped_rules_file_matches_defaults() -> None:
    assert Path(DEFAULT_RULES_JSON).exists()
    assert GameConfig.from_json() == GameConfig()


def test_from_json_reads_overrides_and_ignores_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(
        json.dumps({"rules_version": "x", "rules": {"tick_ms": 100, "max_patience": 80, "colour": "red"}}),
        encoding="utf-8",
    )

    config = GameConfig.from_json(str(path))
    assert config.tick_ms == 100
    assert config.max_patience == 80.0
    assert config.base_earnings == 10


def test_from_json_accepts_flat_object(tmp_path: Path) -> None:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"unhappy_penalty": 7}), encoding="utf-8")
    assert GameConfig.from_json(str(path)).unhappy_penalty == 7


@pytest.mark.parametrize(
    "raw",
    [
        {"tick_ms": 0},
        {"pot_capacity": -1},
        {"customers_per_day": "often"},
        {"next_customer_delay_ms": -10},
        {"tick_ms": 3.9},
        {"base_earnings": 10.5},
        {"pot_capacity": True},
    ],
)
def test_invalid_rules_raise_value_error(raw) -> None:
    with pytest.raises(ValueError):
        GameConfig.from_mapping(raw)


def test_whole_number_floats_are_accepted_for_integer_rules() -> None:
    config = GameConfig.from_mapping({"tick_ms": 250.0, "base_decay": 2})
    assert config.tick_ms == 250
    assert isinstance(config.tick_ms, int)
    assert config.base_decay == 2.0


def test_order_seed_keeps_given_seed_in_range() -> None:
    assert order_seed(99) == 99
    assert order_seed(MAX_SEED_VALUE + 5) == 4


def test_order_seed_generates_seed_when_missing() -> None:
    seed = order_seed()
    assert 0 <= seed <= MAX_SEED_VALUE


def test_session_records_seed_and_prefers_injected_rng() -> None:
    assert GameSession(ManualScheduler(), seed=99).seed == 99
    assert GameSession(ManualScheduler(), rng=random.Random(1)).seed is None
