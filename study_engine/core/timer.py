# core/timer.py

import logging
import math
import threading
from dataclasses import replace
from typing import Optional

from study_engine.config import (
    ADAPTIVENESS,
    DEFAULT_DURATION,
    GROW_FACTOR,
    HIGH_SCORE_THRESHOLD,
    LOW_SCORE_THRESHOLD,
    MAX_DURATION,
    MIN_DURATION,
    NUDGE_SECONDS,
    SHRINK_FACTOR,
)
from study_engine.core.models import TimerState

logger = logging.getLogger(__name__)

DIRECTIONS = ("up", "down")


def clamp_duration(seconds: int) -> int:
    return int(max(MIN_DURATION, min(MAX_DURATION, seconds)))


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def format_seconds(seconds: int) -> str:
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins:02d}:{secs:02d}"


class AdaptiveTimer:
    """
    Per-question countdown with a self-tuning base duration.

    Nothing here owns a clock: an external scheduler calls `tick(elapsed)`.
    Every operation swaps the whole TimerState under one lock, so a tick
    never interleaves with adapt/reset.
    """

    def __init__(self, base_duration: int = DEFAULT_DURATION):
        base = clamp_duration(base_duration)
        self._state = TimerState(base_duration=base, remaining=base, running=False)
        self._expired = False
        self._carry = 0.0
        self._lock = threading.Lock()

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def expired(self) -> bool:
        return self._expired

    def format_remaining(self) -> str:
        return format_seconds(self._state.remaining)

    # ---------------------------------------------------
    # Run / pause
    # ---------------------------------------------------
    def start(self):
        with self._lock:
            if self._state.remaining > 0:
                self._state = replace(self._state, running=True)

    def pause(self):
        with self._lock:
            self._state = replace(self._state, running=False)

    def toggle(self):
        with self._lock:
            s = self._state
            if s.running:
                self._state = replace(s, running=False)
            elif s.remaining > 0:
                self._state = replace(s, running=True)

    # ---------------------------------------------------
    # Countdown
    # ---------------------------------------------------
    def tick(self, elapsed_seconds: float = 1) -> bool:
        """
        Consume elapsed wall-clock seconds. Returns True exactly once per
        countdown, on the tick that reaches zero.
        """
        if elapsed_seconds < 0:
            raise ValueError("elapsed_seconds cannot be negative")

        with self._lock:
            s = self._state
            if not s.running:
                return False

            total = self._carry + elapsed_seconds
            whole = int(total)
            self._carry = total - whole
            if whole == 0:
                return False

            remaining = max(0, s.remaining - whole)
            fired = remaining == 0 and not self._expired
            if remaining == 0:
                self._expired = True
                self._carry = 0.0
            self._state = replace(s, remaining=remaining, running=remaining > 0)

        if fired:
            logger.info("Countdown expired (base %ss)", s.base_duration)
        return fired

    def reset(self):
        with self._lock:
            self._state = replace(self._state, remaining=self._state.base_duration, running=False)
            self._expired = False
            self._carry = 0.0

    # ---------------------------------------------------
    # Adaptation
    # ---------------------------------------------------
    def adapt(self, direction: Optional[str] = None, score: Optional[float] = None) -> int:
        """
        Retune the base duration and restart the countdown from it.

        Low scores shrink the budget by 10% of base, high scores grow it
        by 5%; a direction alone nudges by 30 s. Returns the new base.
        """
        if direction is not None and direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
        if direction is None and score is None:
            raise ValueError("adapt needs a direction or a score")

        with self._lock:
            base = self._state.base_duration

            adjustment = 0
            if direction is not None:
                adjustment = NUDGE_SECONDS if direction == "up" else -NUDGE_SECONDS

            if score is not None:
                if score < LOW_SCORE_THRESHOLD:
                    adjustment = -round_half_up(base * ADAPTIVENESS * SHRINK_FACTOR)
                elif score > HIGH_SCORE_THRESHOLD:
                    adjustment = round_half_up(base * ADAPTIVENESS * GROW_FACTOR)

            new_base = clamp_duration(base + adjustment)
            self._state = TimerState(base_duration=new_base, remaining=new_base, running=self._state.running)
            self._expired = False
            self._carry = 0.0

        logger.debug("Timer adapted %s -> %s (direction=%s, score=%s)", base, new_base, direction, score)
        return new_base
