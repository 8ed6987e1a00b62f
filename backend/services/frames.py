"""
In-memory registry of mounted frames. Capped by FRAME_REGISTRY_MAX; the
oldest frame is disposed when the cap is exceeded.
"""
from __future__ import annotations

import logging
import os
import threading
import uuid
from typing import Callable, Dict, List, Optional, TypeVar

from engine.reconcile import SyncPolicy
from models import ViewerConfig

from services.surface import EmbeddingSurface

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FrameNotFound(KeyError):
    pass


class FrameRegistry:
    def __init__(self, max_frames: Optional[int] = None, policy: Optional[SyncPolicy] = None, clock=None) -> None:
        self._frames: Dict[str, EmbeddingSurface] = {}
        self._order: List[str] = []
        self._lock = threading.Lock()
        self._max_frames = max(1, max_frames if max_frames is not None else int(os.getenv("FRAME_REGISTRY_MAX", "256")))
        self._policy = policy
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)

    def mount(self, config: ViewerConfig) -> EmbeddingSurface:
        frame_id = str(uuid.uuid4())[:12]
        kwargs = {"policy": self._policy or SyncPolicy.from_env()}
        if self._clock is not None:
            kwargs["clock"] = self._clock
        surface = EmbeddingSurface(frame_id, config, **kwargs)
        with self._lock:
            if len(self._frames) >= self._max_frames and self._order:
                oldest = self._order.pop(0)
                evicted = self._frames.pop(oldest, None)
                if evicted is not None:
                    evicted.dispose()
                    logger.info("frame=%s evicted (registry full)", oldest)
            self._frames[frame_id] = surface
            self._order.append(frame_id)
        logger.info("frame=%s mounted configured=%s generation=%s", frame_id, surface.configured, surface.generation)
        return surface

    def run(self, frame_id: str, fn: Callable[[EmbeddingSurface], T]) -> T:
        """Run fn against a mounted surface; event handlers for one frame never interleave."""
        with self._lock:
            surface = self._frames.get(frame_id)
            if surface is None:
                raise FrameNotFound(frame_id)
            return fn(surface)

    def unmount(self, frame_id: str) -> None:
        with self._lock:
            surface = self._frames.pop(frame_id, None)
            if surface is None:
                raise FrameNotFound(frame_id)
            if frame_id in self._order:
                self._order.remove(frame_id)
            surface.dispose()
        logger.info("frame=%s unmounted", frame_id)

    def clear(self) -> None:
        with self._lock:
            for surface in self._frames.values():
                surface.dispose()
            self._frames.clear()
            self._order.clear()


_REGISTRY: Optional[FrameRegistry] = None
_REGISTRY_LOCK = threading.Lock()


def get_registry() -> FrameRegistry:
    global _REGISTRY
    # Sync endpoints run in a threadpool; first requests may race here.
    with _REGISTRY_LOCK:
        if _REGISTRY is None:
            _REGISTRY = FrameRegistry()
        return _REGISTRY
