"""
Height reconciliation for the embedded report frame.

Raw height samples from the report content are noisy: they jitter by a few
pixels, briefly collapse while the viewer navigates, and only legitimately
shrink after a display-setting change. SyncState is the explicit record and
the module-level functions are pure transitions over it; HeightReconciler
owns one state plus a clock.
"""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from models import SampleOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncPolicy:
    jitter_px: int = 5
    buffer_px: int = 25
    shrink_threshold_px: int = 50
    shrink_window_s: float = 5.0

    @classmethod
    def from_env(cls) -> "SyncPolicy":
        return cls(
            jitter_px=int(os.getenv("HEIGHT_JITTER_PX", "5")),
            buffer_px=int(os.getenv("HEIGHT_BUFFER_PX", "25")),
            shrink_threshold_px=int(os.getenv("HEIGHT_SHRINK_THRESHOLD_PX", "50")),
            shrink_window_s=float(os.getenv("HEIGHT_SHRINK_WINDOW_S", "5.0")),
        )


@dataclass(frozen=True)
class SyncState:
    last_accepted_height: int
    display_height: int
    shrink_allowed: bool = False
    shrink_window_expiry: Optional[float] = None
    auto_fit: bool = True


def initial_state(declared_height: int, auto_fit: bool = True) -> SyncState:
    return SyncState(
        last_accepted_height=declared_height,
        display_height=declared_height,
        auto_fit=auto_fit,
    )


def open_shrink_window(state: SyncState, declared_height: int, now: float, policy: SyncPolicy) -> SyncState:
    """A display setting changed: allow shrinking for a while and re-baseline on the declared height."""
    return replace(
        state,
        last_accepted_height=declared_height,
        shrink_allowed=True,
        shrink_window_expiry=now + policy.shrink_window_s,
    )


def expire_shrink_window(state: SyncState, now: float) -> SyncState:
    if state.shrink_window_expiry is None or now < state.shrink_window_expiry:
        return state
    return replace(state, shrink_allowed=False, shrink_window_expiry=None)


def reset_declared_height(state: SyncState, declared_height: int) -> SyncState:
    return replace(state, last_accepted_height=declared_height, display_height=declared_height)


def set_auto_fit(state: SyncState, enabled: bool, declared_height: int, policy: SyncPolicy) -> SyncState:
    """
    Toggle auto-fit. While off the frame shows the declared height; turning it
    back on restores the display from the last accepted sample.
    """
    if enabled == state.auto_fit:
        return state
    if not enabled:
        return replace(state, auto_fit=False, display_height=declared_height)
    if state.last_accepted_height == declared_height:
        display = declared_height
    else:
        display = state.last_accepted_height + policy.buffer_px
    return replace(state, auto_fit=True, display_height=display)


def apply_sample(state: SyncState, value: int, now: float, policy: SyncPolicy) -> Tuple[SyncState, SampleOutcome]:
    state = expire_shrink_window(state, now)
    if not state.auto_fit:
        return state, SampleOutcome.AUTO_FIT_DISABLED
    diff = value - state.last_accepted_height
    if diff < -policy.shrink_threshold_px and not state.shrink_allowed:
        return state, SampleOutcome.SUPPRESSED_SHRINK
    if abs(diff) <= policy.jitter_px:
        return state, SampleOutcome.JITTER
    return replace(state, last_accepted_height=value, display_height=value + policy.buffer_px), SampleOutcome.ACCEPTED


class HeightReconciler:
    """Owns the SyncState for one mounted frame."""

    def __init__(
        self,
        declared_height: int,
        auto_fit: bool = True,
        policy: Optional[SyncPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or SyncPolicy()
        self._clock = clock
        self._declared_height = declared_height
        self._state = initial_state(declared_height, auto_fit=auto_fit)
        self._disposed = False

    @property
    def state(self) -> SyncState:
        if not self._disposed:
            self._state = expire_shrink_window(self._state, self._clock())
        return self._state

    @property
    def display_height(self) -> int:
        return self.state.display_height

    @property
    def disposed(self) -> bool:
        return self._disposed

    def settings_changed(self, declared_height: Optional[int] = None) -> None:
        if self._disposed:
            return
        if declared_height is not None:
            self._declared_height = declared_height
        self._state = open_shrink_window(self._state, self._declared_height, self._clock(), self.policy)
        logger.debug("Shrink window opened until %.3f", self._state.shrink_window_expiry)

    def declared_height_changed(self, height: int) -> None:
        if self._disposed:
            return
        self._declared_height = height
        self._state = reset_declared_height(self._state, height)

    def set_auto_fit(self, enabled: bool) -> None:
        if self._disposed:
            return
        self._state = set_auto_fit(self._state, enabled, self._declared_height, self.policy)

    def on_sample(self, value: int) -> SampleOutcome:
        if self._disposed:
            return SampleOutcome.DISPOSED
        before = self._state
        self._state, outcome = apply_sample(before, value, self._clock(), self.policy)
        logger.debug(
            "Height update received new=%s last=%s diff=%s allow_shrink=%s outcome=%s",
            value,
            before.last_accepted_height,
            value - before.last_accepted_height,
            self._state.shrink_allowed,
            outcome.value,
        )
        return outcome

    def dispose(self) -> None:
        """Tear down; the shrink window is dropped and later events are no-ops."""
        self._state = replace(self._state, shrink_allowed=False, shrink_window_expiry=None)
        self._disposed = True
