from __future__ import annotations

import random
from unittest.mock import Mock

import pytest

from karak_api import PATIENCE_DANGER, PATIENCE_NORMAL, PATIENCE_WARNING
from karak_scheduler import ManualScheduler
from karak_session import GameSession, SessionListener, SessionState


def add_all(session: GameSession, ingredients: list[str]) -> None:
    for ingredient in ingredients:
        session.add_ingredient(ingredient)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def listener() -> Mock:
    return Mock(spec=SessionListener)


@pytest.fixture
def session(scheduler: ManualScheduler, listener: Mock) -> GameSession:
    game = GameSession(scheduler, listener, rng=random.Random(7))
    game.start()
    scheduler.advance(1000)
    listener.reset_mock()
    return game


def test_each_tick_drains_day_one_rate(session: GameSession, scheduler: ManualScheduler, listener: Mock) -> None:
    scheduler.advance(200)
    assert session.customer.patience == pytest.approx(98.5)
    listener.on_patience_changed.assert_called_once_with(pytest.approx(0.985))

    scheduler.advance(199)
    assert listener.on_patience_changed.call_count == 1
    scheduler.advance(1)
    assert session.customer.patience == pytest.approx(97.0)


def test_patience_expiry_sends_customer_away_angry(
    session: GameSession, scheduler: ManualScheduler, listener: Mock
) -> None:
    # 100 / 1.5 per tick -> the 67th tick empties the bar.
    scheduler.advance(66 * 200)
    assert session.has_customer()
    assert session.customer.patience == pytest.approx(1.0)

    scheduler.advance(200)
    assert session.state is SessionState.IDLE
    assert session.stats.score == 0
    assert session.stats.streak == 0
    assert session.pot.contents == []
    listener.on_feedback.assert_any_call("Customer left angry! -5 AED", True)
    listener.on_patience_changed.assert_called_with(1.0)


def test_expiry_after_partial_brew_empties_pot(session: GameSession, scheduler: ManualScheduler) -> None:
    add_all(session, ["tea", "milk"])
    scheduler.advance(67 * 200)

    assert not session.has_customer()
    assert session.pot.contents == []


def test_expiry_keeps_earlier_score_minus_penalty(session: GameSession, scheduler: ManualScheduler) -> None:
    add_all(session, ["tea", "milk", "sugar", "cardamom"])
    session.serve()
    scheduler.advance(3000)
    assert session.stats.score == 12

    scheduler.advance(67 * 200)
    assert session.stats.score == 7
    assert session.stats.streak == 0


def test_only_one_clock_runs_per_customer(session: GameSession, scheduler: ManualScheduler) -> None:
    assert scheduler.pending() == 1
    session.spawn_customer()
    assert scheduler.pending() == 1

    scheduler.advance(200)
    assert session.customer.patience == pytest.approx(98.5)


def test_clock_stops_on_happy_departure(session: GameSession, scheduler: ManualScheduler, listener: Mock) -> None:
    add_all(session, ["cardamom", "sugar", "milk", "tea"])
    session.serve()
    listener.reset_mock()

    scheduler.advance(2800)
    listener.on_patience_changed.assert_not_called()
    assert session.stats.score == 12


def test_unhappy_departure_waits_three_seconds_for_next_customer(
    session: GameSession, scheduler: ManualScheduler
) -> None:
    scheduler.advance(67 * 200)
    assert not session.has_customer()

    scheduler.advance(2999)
    assert not session.has_customer()
    scheduler.advance(1)
    assert session.has_customer()
    assert session.customer.patience == 100


@pytest.mark.parametrize(
    "ticks, tier",
    [
        (0, PATIENCE_NORMAL),
        (33, PATIENCE_NORMAL),  # 50.5 left
        (34, PATIENCE_WARNING),  # 49.0 left
        (53, PATIENCE_WARNING),  # 20.5 left
        (54, PATIENCE_DANGER),  # 19.0 left
    ],
)
def test_patience_tiers_follow_remaining_patience(
    session: GameSession, scheduler: ManualScheduler, ticks: int, tier: str
) -> None:
    scheduler.advance(ticks * 200)
    assert session.patience_tier() == tier
