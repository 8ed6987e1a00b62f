"""
Embedding surface: binds a ViewerConfig to the composed report address and
the height reconciler for one mounted frame.

Each content load gets a generation number. Samples are accepted only when
tagged with the current generation, so a late message from replaced content
cannot move the height of the new one.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from engine.compose import compose_for_config
from engine.reconcile import HeightReconciler, SyncPolicy
from models import ConfigChangeResponse, FrameState, SampleOutcome, SyncStateView, ViewerConfig
from reporting.host_page import build_host_page_html

logger = logging.getLogger(__name__)


def parse_height_message(payload: Any) -> Optional[int]:
    """Return the reportHeight of a frame message, or None when the payload is not one."""
    if not isinstance(payload, dict):
        return None
    value = payload.get("reportHeight")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value or value in (float("inf"), float("-inf")):
        return None
    return int(round(value))


@dataclass
class ConfigChange:
    reloaded: bool = False
    settings_changed: bool = False
    height_reset: bool = False
    auto_fit_changed: bool = False


class EmbeddingSurface:
    def __init__(
        self,
        frame_id: str,
        config: ViewerConfig,
        policy: Optional[SyncPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        toolbar_mode: Optional[str] = None,
    ) -> None:
        self.frame_id = frame_id
        self.config = config
        self._toolbar_mode = toolbar_mode
        self.url, self.custom_parameters_valid = compose_for_config(config, toolbar_mode)
        self.generation = 1 if self.url else 0
        self.reconciler = HeightReconciler(
            config.height,
            auto_fit=config.auto_fit_height,
            policy=policy,
            clock=clock,
        )

    @property
    def configured(self) -> bool:
        return bool(self.config.report_url)

    @property
    def disposed(self) -> bool:
        return self.reconciler.disposed

    @property
    def display_height(self) -> int:
        return self.reconciler.display_height

    def apply_config(self, config: ViewerConfig) -> ConfigChange:
        old = self.config
        change = ConfigChange()
        if self.disposed:
            return change
        self.config = config
        if config.address_key() != old.address_key():
            url, valid = compose_for_config(config, self._toolbar_mode)
            self.custom_parameters_valid = valid
            if url != self.url:
                self.url = url
                self.generation += 1
                change.reloaded = True
                logger.info("frame=%s reload generation=%s", self.frame_id, self.generation)
        if config.display_key() != old.display_key():
            self.reconciler.settings_changed(config.height)
            change.settings_changed = True
        if config.height != old.height:
            self.reconciler.declared_height_changed(config.height)
            change.height_reset = True
        if config.auto_fit_height != old.auto_fit_height:
            self.reconciler.set_auto_fit(config.auto_fit_height)
            change.auto_fit_changed = True
        return change

    def receive_message(self, payload: Any, generation: int) -> SampleOutcome:
        if self.disposed:
            return SampleOutcome.DISPOSED
        height = parse_height_message(payload)
        if height is None:
            return SampleOutcome.IGNORED
        if generation != self.generation:
            logger.debug(
                "frame=%s dropping sample from generation %s (current %s)",
                self.frame_id,
                generation,
                self.generation,
            )
            return SampleOutcome.STALE
        return self.reconciler.on_sample(height)

    def render(self, api_base: str = "/api/v1") -> str:
        url = self.url if self.configured else ""
        return build_host_page_html(self.frame_id, self.generation, url, self.display_height, api_base=api_base)

    def dispose(self) -> None:
        self.reconciler.dispose()

    def snapshot(self) -> FrameState:
        state = self.reconciler.state
        return FrameState(
            frame_id=self.frame_id,
            generation=self.generation,
            url=self.url,
            configured=self.configured,
            display_height=state.display_height,
            sync=SyncStateView(
                last_accepted_height=state.last_accepted_height,
                shrink_allowed=state.shrink_allowed,
                shrink_window_expiry=state.shrink_window_expiry,
                display_height=state.display_height,
                auto_fit=state.auto_fit,
            ),
            config=self.config,
        )

    def change_response(self, change: ConfigChange) -> ConfigChangeResponse:
        return ConfigChangeResponse(
            frame=self.snapshot(),
            reloaded=change.reloaded,
            settings_changed=change.settings_changed,
            height_reset=change.height_reset,
            auto_fit_changed=change.auto_fit_changed,
        )
