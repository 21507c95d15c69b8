"""Tkinter front end for the karak stand.

The window only draws what :class:`karak_session.GameSession` reports through
its listener hooks; every rule lives in the session. Run with::

    python karak_desktop.py [--seed N] [--rules path/to/karak_rules.json]
"""
from __future__ import annotations

import sys
import tkinter as tk
from tkinter import ttk
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from karak_api import (
    KARAK_RECIPE,
    PATIENCE_DANGER,
    PATIENCE_NORMAL,
    PATIENCE_WARNING,
    GameConfig,
    describe_contents,
    patience_tier,
)
from karak_scheduler import TkScheduler
from karak_session import GameSession, SessionListener

PATIENCE_COLORS = {
    PATIENCE_NORMAL: "#4cd137",
    PATIENCE_WARNING: "#f1c40f",
    PATIENCE_DANGER: "#e74c3c",
}
FEEDBACK_COLOR = "#dcdde1"
ERROR_COLOR = "#ff6b6b"
POT_COLOR = "#8b4513"
BACKGROUND = "#2f3640"
WAITING_TEXT = "Waiting..."
SHAKE_OFFSETS = (6, -6, 4, -4, 2, -2, 0)
SHAKE_DELAY_MS = 70
EVENT_POLL_MS = 250


class KarakApp(SessionListener):
    def __init__(
        self,
        root: tk.Tk,
        *,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.root = root
        self.root.title("Karak Rush")
        self.root.geometry("640x520")
        self.root.minsize(560, 480)
        self.root.configure(bg=BACKGROUND)

        self.score_var = tk.StringVar(value="0")
        self.day_var = tk.StringVar(value="1")
        self.streak_var = tk.StringVar(value="0")
        self.order_var = tk.StringVar(value=WAITING_TEXT)
        self.pot_status_var = tk.StringVar(value=describe_contents(()))
        self.feedback_var = tk.StringVar(value="")

        self.feedback_label: Optional[tk.Label] = None
        self.patience_fill: Optional[tk.Frame] = None
        self.pot_fill: Optional[tk.Frame] = None
        self.log_text: Optional[tk.Text] = None
        self.game_frame: Optional[tk.Frame] = None
        self.ingredient_buttons: Dict[str, ttk.Button] = {}
        self._shaking = False

        self._init_styles()
        self._build_layout()

        self.session = GameSession(
            TkScheduler(self.root),
            self,
            config=config,
            seed=seed,
        )
        self._append_log_lines([f"New session (seed {self.session.seed})."])
        self.session.start()
        self._flush_events()
        self.root.after(EVENT_POLL_MS, self._poll_events)
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

    # ----------------- UI setup -----------------
    def _init_styles(self) -> None:
        style = ttk.Style(self.root)
        try:
            style.theme_use("clam")
        except tk.TclError:
            pass
        style.configure("Stat.TLabel", background=BACKGROUND, foreground="#f5f6fa", font=("Helvetica", 12, "bold"))
        style.configure("Info.TLabel", background=BACKGROUND, foreground="#dcdde1", font=("Helvetica", 10))
        style.configure("Ingredient.TButton", font=("Helvetica", 11), padding=6)
        style.configure("Serve.TButton", font=("Helvetica", 12, "bold"), padding=8)

    def _build_layout(self) -> None:
        main = tk.Frame(self.root, bg=BACKGROUND, padx=16, pady=16)
        main.pack(fill="both", expand=True)
        self.game_frame = main
        main.columnconfigure(0, weight=1)
        main.rowconfigure(4, weight=1)

        stats = tk.Frame(main, bg=BACKGROUND)
        stats.grid(row=0, column=0, sticky="ew")
        for column, (label, var) in enumerate(
            (("Score (AED)", self.score_var), ("Day", self.day_var), ("Streak", self.streak_var))
        ):
            ttk.Label(stats, text=f"{label}:", style="Info.TLabel").grid(row=0, column=column * 2, padx=(0, 4))
            ttk.Label(stats, textvariable=var, style="Stat.TLabel").grid(row=0, column=column * 2 + 1, padx=(0, 18))

        customer = tk.Frame(main, bg=BACKGROUND)
        customer.grid(row=1, column=0, sticky="ew", pady=(12, 0))
        customer.columnconfigure(1, weight=1)
        ttk.Label(customer, text="Order:", style="Info.TLabel").grid(row=0, column=0, sticky="w")
        ttk.Label(customer, textvariable=self.order_var, style="Stat.TLabel").grid(row=0, column=1, sticky="w")
        patience_track = tk.Frame(customer, bg="#718093", height=14)
        patience_track.grid(row=1, column=0, columnspan=2, sticky="ew", pady=(6, 0))
        self.patience_fill = tk.Frame(patience_track, bg=PATIENCE_COLORS[PATIENCE_NORMAL])
        self.patience_fill.place(relx=0, rely=0, relheight=1, relwidth=1.0)

        pot = tk.Frame(main, bg=BACKGROUND)
        pot.grid(row=2, column=0, sticky="ew", pady=(16, 0))
        pot_track = tk.Frame(pot, bg="#40464f", width=90, height=110)
        pot_track.grid(row=0, column=0, rowspan=2)
        self.pot_fill = tk.Frame(pot_track, bg=POT_COLOR)
        self.pot_fill.place(relx=0, rely=1.0, anchor="sw", relwidth=1, relheight=0.0)
        ttk.Label(pot, textvariable=self.pot_status_var, style="Info.TLabel").grid(row=0, column=1, sticky="w", padx=12)

        controls = tk.Frame(main, bg=BACKGROUND)
        controls.grid(row=3, column=0, sticky="ew", pady=(16, 0))
        for column, ingredient in enumerate(KARAK_RECIPE.ingredients):
            button = ttk.Button(
                controls,
                text=ingredient.title(),
                style="Ingredient.TButton",
                command=lambda name=ingredient: self.add_ingredient(name),
            )
            button.grid(row=0, column=column, padx=4)
            self.ingredient_buttons[ingredient] = button
        ttk.Button(controls, text="Serve", style="Serve.TButton", command=self.serve).grid(
            row=1, column=0, columnspan=2, sticky="ew", padx=4, pady=(10, 0)
        )
        ttk.Button(controls, text="New Game", command=self.new_game).grid(
            row=1, column=2, columnspan=2, sticky="ew", padx=4, pady=(10, 0)
        )

        self.feedback_label = tk.Label(
            main, textvariable=self.feedback_var, bg=BACKGROUND, fg=FEEDBACK_COLOR, font=("Helvetica", 12)
        )
        self.feedback_label.grid(row=4, column=0, sticky="new", pady=(12, 0))

        self.log_text = tk.Text(main, height=7, state="disabled", bg="#353b48", fg="#f5f6fa", relief="flat")
        self.log_text.grid(row=5, column=0, sticky="ew", pady=(8, 0))

    # ----------------- Player actions -----------------
    def add_ingredient(self, ingredient: str) -> None:
        self.session.add_ingredient(ingredient)
        self._flush_events()

    def serve(self) -> None:
        self.session.serve()
        self._flush_events()

    def new_game(self) -> None:
        self.session.reset()
        self.session.start()
        self._flush_events()

    def _on_close(self) -> None:
        self.session.shutdown()
        self.root.destroy()

    # ----------------- Session listener -----------------
    def on_feedback(self, message: str, is_error: bool) -> None:
        self.feedback_var.set(message)
        if self.feedback_label is not None:
            self.feedback_label.configure(fg=ERROR_COLOR if is_error else FEEDBACK_COLOR)
        if is_error:
            self._shake()

    def on_score_changed(self, score: int) -> None:
        self.score_var.set(str(score))

    def on_streak_changed(self, streak: int) -> None:
        self.streak_var.set(str(streak))

    def on_day_changed(self, day: int) -> None:
        self.day_var.set(str(day))

    def on_pot_changed(self, contents: Tuple[str, ...], fill_fraction: float) -> None:
        self.pot_status_var.set(describe_contents(contents))
        if self.pot_fill is not None:
            self.pot_fill.place_configure(relheight=fill_fraction)

    def on_customer_order_changed(self, order: Tuple[str, ...]) -> None:
        self.order_var.set(", ".join(order) if order else WAITING_TEXT)

    def on_patience_changed(self, fraction: float) -> None:
        if self.patience_fill is None:
            return
        self.patience_fill.place_configure(relwidth=fraction)
        self.patience_fill.configure(bg=PATIENCE_COLORS[patience_tier(fraction, 1.0)])

    # ----------------- Helpers -----------------
    def _shake(self, offsets: Sequence[int] = SHAKE_OFFSETS) -> None:
        frame = self.game_frame
        if frame is None or self._shaking:
            return
        self._shaking = True

        def step(index: int) -> None:
            if not frame.winfo_exists():
                self._shaking = False
                return
            if index >= len(offsets):
                frame.pack_configure(padx=0)
                self._shaking = False
                return
            offset = offsets[index]
            frame.pack_configure(padx=(max(offset, 0), max(-offset, 0)))
            frame.after(SHAKE_DELAY_MS, lambda: step(index + 1))

        step(0)

    def _poll_events(self) -> None:
        self._flush_events()
        if not self.session.closed:
            self.root.after(EVENT_POLL_MS, self._poll_events)

    def _flush_events(self) -> None:
        self._append_log_lines(self.session.consume_events())

    def _append_log_lines(self, lines: Iterable[str]) -> None:
        collected: List[str] = [line for line in lines if line]
        if not collected or self.log_text is None:
            return
        self.log_text.configure(state="normal")
        for line in collected:
            self.log_text.insert("end", f"{line}\n")
        self.log_text.see("end")
        self.log_text.configure(state="disabled")


def _option_value(argv: Sequence[str], flag: str) -> Optional[str]:
    if flag not in argv:
        return None
    idx = list(argv).index(flag)
    if idx + 1 < len(argv):
        return argv[idx + 1]
    return None


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = list(sys.argv[1:] if argv is None else argv)
    seed: Optional[int] = None
    raw_seed = _option_value(args, "--seed")
    if raw_seed is not None:
        try:
            seed = int(raw_seed)
        except ValueError:
            seed = None
    config = GameConfig.from_json(_option_value(args, "--rules"))

    root = tk.Tk()
    KarakApp(root, config=config, seed=seed)
    root.mainloop()


if __name__ == "__main__":
    main()
