from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol, Tuple

from karak_api import KARAK_RECIPE, GameConfig, Recipe, patience_tier
from karak_scheduler import Callback, ScheduledCall


MAX_SEED_VALUE = 2**32 - 1


def order_seed(seed: Optional[int] = None) -> int:
    """Seed for shuffling customer orders, drawn from the OS when not given."""

    if seed is None:
        return random.SystemRandom().getrandbits(32)
    return int(seed) & MAX_SEED_VALUE


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callback) -> ScheduledCall: ...

    def call_every(self, interval_ms: int, callback: Callback) -> ScheduledCall: ...


class SessionState(Enum):
    IDLE = "idle"
    SERVING = "serving"
    FULL = "full"


class ActionStatus(Enum):
    """Outcome of a player action. Anything but ``OK`` is reported as feedback."""

    OK = "ok"
    NO_ACTIVE_CUSTOMER = "no_active_customer"
    POT_FULL = "pot_full"
    POT_NOT_FULL = "pot_not_full"
    RECIPE_MISMATCH = "recipe_mismatch"


class SessionListener:
    """Receives state changes from a :class:`GameSession`.

    Every hook is a no-op here so front ends only override what they draw.
    """

    def on_feedback(self, message: str, is_error: bool) -> None:
        pass

    def on_score_changed(self, score: int) -> None:
        pass

    def on_streak_changed(self, streak: int) -> None:
        pass

    def on_day_changed(self, day: int) -> None:
        pass

    def on_pot_changed(self, contents: Tuple[str, ...], fill_fraction: float) -> None:
        pass

    def on_customer_order_changed(self, order: Tuple[str, ...]) -> None:
        pass

    def on_patience_changed(self, fraction: float) -> None:
        pass


@dataclass
class Pot:
    capacity: int = 4
    contents: List[str] = field(default_factory=list)

    @property
    def is_full(self) -> bool:
        return len(self.contents) >= self.capacity

    @property
    def fill_fraction(self) -> float:
        return len(self.contents) / self.capacity

    def add(self, ingredient_id: str) -> None:
        if self.is_full:
            raise ValueError("Pot is already full")
        self.contents.append(ingredient_id)

    def empty(self) -> None:
        self.contents.clear()


@dataclass
class Customer:
    order: Tuple[str, ...]
    patience: float
    decay_rate: float
    active: bool = True


@dataclass
class SessionStats:
    score: int = 0
    streak: int = 0
    day: int = 1
    customers_served: int = 0


class GameSession:
    """Run the karak stand: one customer at a time, one pot, one score.

    All timing goes through ``scheduler``; the session owns at most one
    patience clock and one pending customer arrival at any moment.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        listener: Optional[SessionListener] = None,
        *,
        config: Optional[GameConfig] = None,
        recipe: Recipe = KARAK_RECIPE,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.config = config or GameConfig()
        if len(recipe) != self.config.pot_capacity:
            raise ValueError("Recipe size must match the pot capacity")

        self.scheduler = scheduler
        self.listener = listener or SessionListener()
        self.recipe = recipe
        # An injected rng wins; otherwise record the seed so orders can be replayed.
        self.seed = seed if rng is not None else order_seed(seed)
        self.rng = rng or random.Random(self.seed)

        self.pot = Pot(capacity=self.config.pot_capacity)
        self.customer: Optional[Customer] = None
        self.stats = SessionStats()
        self.closed = False
        self._patience_clock: Optional[ScheduledCall] = None
        self._spawn_call: Optional[ScheduledCall] = None
        self._events: List[str] = []

    # ----------------- Event helpers -----------------
    def _push_event(self, message: str) -> None:
        self._events.append(message)

    def consume_events(self) -> List[str]:
        events = list(self._events)
        self._events.clear()
        return events

    def _feedback(self, message: str, is_error: bool = False) -> None:
        self._push_event(message)
        self.listener.on_feedback(message, is_error)

    def _notify_pot(self) -> None:
        self.listener.on_pot_changed(tuple(self.pot.contents), self.pot.fill_fraction)

    def _notify_stats(self) -> None:
        self.listener.on_score_changed(self.stats.score)
        self.listener.on_streak_changed(self.stats.streak)
        self.listener.on_day_changed(self.stats.day)

    # ----------------- Queries -----------------
    @property
    def state(self) -> SessionState:
        if not self.has_customer():
            return SessionState.IDLE
        if self.pot.is_full:
            return SessionState.FULL
        return SessionState.SERVING

    def has_customer(self) -> bool:
        return self.customer is not None and self.customer.active

    def is_customer_pending(self) -> bool:
        return self._spawn_call is not None and self._spawn_call.active

    def patience_fraction(self) -> float:
        if not self.has_customer():
            return 1.0
        assert self.customer is not None
        return min(max(self.customer.patience / self.config.max_patience, 0.0), 1.0)

    def patience_tier(self) -> str:
        return patience_tier(self.patience_fraction(), 1.0)

    def snapshot(self) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "score": self.stats.score,
            "streak": self.stats.streak,
            "day": self.stats.day,
            "customers_served": self.stats.customers_served,
            "pot": list(self.pot.contents),
            "order": list(self.customer.order) if self.has_customer() else [],
            "patience": self.patience_fraction(),
            "seed": self.seed,
        }

    # ----------------- Lifecycle -----------------
    def start(self) -> None:
        """Empty the pot and call the first customer in after a short wait.

        Does nothing while a customer is waiting or already on the way, so a
        brew in progress is never thrown out.
        """

        if self.closed or self.has_customer() or self.is_customer_pending():
            return
        self._empty_pot(announce=True)
        self._notify_stats()
        self._schedule_customer(self.config.first_customer_delay_ms)

    def reset(self) -> None:
        """Drop the current customer and all progress without closing the session."""

        self._cancel_timers()
        if self.customer is not None:
            self.customer.active = False
        self.customer = None
        self.stats = SessionStats()
        self.pot.empty()
        self._notify_pot()
        self.listener.on_customer_order_changed(())
        self.listener.on_patience_changed(1.0)
        self._notify_stats()
        self._push_event("Session reset.")

    def shutdown(self) -> None:
        """Cancel every pending timer; later callbacks become no-ops."""

        self._cancel_timers()
        self.closed = True

    def _cancel_timers(self) -> None:
        self._stop_patience_clock()
        if self._spawn_call is not None:
            self._spawn_call.cancel()
            self._spawn_call = None

    # ----------------- Customers -----------------
    def _schedule_customer(self, delay_ms: int) -> None:
        if self._spawn_call is not None:
            self._spawn_call.cancel()
        self._spawn_call = self.scheduler.call_later(delay_ms, self._on_spawn_due)

    def _on_spawn_due(self) -> None:
        self._spawn_call = None
        self.spawn_customer()

    def spawn_customer(self) -> bool:
        """Seat a new customer; returns False if one is already waiting."""

        if self.closed or self.has_customer():
            return False

        order = tuple(self.rng.sample(list(self.recipe.ingredients), len(self.recipe)))
        self.customer = Customer(
            order=order,
            patience=self.config.max_patience,
            decay_rate=self.config.decay_rate(self.stats.day),
        )
        self._stop_patience_clock()
        self._patience_clock = self.scheduler.call_every(self.config.tick_ms, self._tick_patience)

        self.listener.on_customer_order_changed(order)
        self.listener.on_patience_changed(1.0)
        self._feedback("A new customer has arrived!")
        self._push_event(f"Order: {', '.join(order)}")
        return True

    def _stop_patience_clock(self) -> None:
        if self._patience_clock is not None:
            self._patience_clock.cancel()
            self._patience_clock = None

    def _tick_patience(self) -> None:
        customer = self.customer
        if self.closed or customer is None or not customer.active:
            self._stop_patience_clock()
            return
        customer.patience -= customer.decay_rate
        self.listener.on_patience_changed(self.patience_fraction())
        if customer.patience <= 0:
            self._stop_patience_clock()
            self.customer_leaves(happy=False)

    def customer_leaves(self, happy: bool) -> None:
        if not self.has_customer():
            return
        assert self.customer is not None
        self._stop_patience_clock()
        self.customer.active = False
        self.customer = None
        self.listener.on_customer_order_changed(())
        self.listener.on_patience_changed(1.0)
        self._empty_pot(announce=False)

        stats = self.stats
        if happy:
            stats.streak += 1
            stats.customers_served += 1
            earnings = self.config.earnings_for(stats.streak)
            stats.score += earnings
            self._feedback(f"Great Karak! +{earnings} AED")
            if stats.customers_served % self.config.customers_per_day == 0:
                stats.day += 1
                self._feedback(f"Day {stats.day} begins! Customers are faster!")
        else:
            stats.streak = 0
            stats.score = max(0, stats.score - self.config.unhappy_penalty)
            self._feedback(f"Customer left angry! -{self.config.unhappy_penalty} AED", True)
        self._notify_stats()

        self._schedule_customer(self.config.next_customer_delay_ms)

    # ----------------- Player actions -----------------
    def _empty_pot(self, *, announce: bool) -> None:
        self.pot.empty()
        self._notify_pot()
        if announce:
            self._feedback("Pot has been emptied.")

    def add_ingredient(self, ingredient_id: str) -> ActionStatus:
        if not self.has_customer():
            self._feedback("Wait for a customer before you start brewing!", True)
            return ActionStatus.NO_ACTIVE_CUSTOMER
        if self.pot.is_full:
            self._feedback("The pot is full!", True)
            return ActionStatus.POT_FULL

        self.pot.add(ingredient_id)
        self._notify_pot()
        self._feedback(f"Added {ingredient_id}.")
        return ActionStatus.OK

    def serve(self) -> ActionStatus:
        if not self.has_customer():
            self._feedback("There is no one to serve!", True)
            return ActionStatus.NO_ACTIVE_CUSTOMER
        if not self.pot.is_full:
            self._feedback("The drink is not ready yet!", True)
            return ActionStatus.POT_NOT_FULL

        if self.recipe.matches(self.pot.contents):
            self.customer_leaves(happy=True)
            return ActionStatus.OK

        self._empty_pot(announce=False)
        self._feedback("This is not what the customer ordered!", True)
        return ActionStatus.RECIPE_MISMATCH
