"""Tests for the in-memory frame registry."""
import threading

import pytest

from engine.reconcile import SyncPolicy
from models import SampleOutcome, ViewerConfig
from services import frames
from services.frames import FrameNotFound, FrameRegistry


def test_shared_registry_is_created_once_under_concurrent_access(monkeypatch):
    monkeypatch.setattr(frames, "_REGISTRY", None)
    seen = []
    start = threading.Barrier(16)

    def first_request():
        start.wait()
        seen.append(frames.get_registry())

    threads = [threading.Thread(target=first_request) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(seen) == 16
    assert all(r is seen[0] for r in seen)


def test_oldest_frame_evicted_and_disposed_when_full():
    registry = FrameRegistry(max_frames=2, policy=SyncPolicy())
    first = registry.mount(ViewerConfig(report_url="https://host/r?/A"))
    registry.mount(ViewerConfig(report_url="https://host/r?/B"))
    registry.mount(ViewerConfig(report_url="https://host/r?/C"))
    assert len(registry) == 2
    assert first.disposed is True
    assert first.receive_message({"reportHeight": 1200}, 1) == SampleOutcome.DISPOSED
    with pytest.raises(FrameNotFound):
        registry.run(first.frame_id, lambda surface: surface.snapshot())


def test_unmount_unknown_frame_raises():
    registry = FrameRegistry(max_frames=4, policy=SyncPolicy())
    with pytest.raises(FrameNotFound):
        registry.unmount("missing")
