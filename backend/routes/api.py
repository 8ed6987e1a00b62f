"""
Frame API: mount embedding surfaces, apply configuration, deliver height samples.
The host page forwards {reportHeight} messages from the report frame here.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from engine.compose import compose_for_config
from models import (
    ComposeResponse,
    ConfigChangeResponse,
    FrameState,
    SampleRequest,
    SampleResponse,
    ViewerConfig,
)
from services.frames import FrameNotFound, FrameRegistry, get_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["frames"])


def _not_found(frame_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Frame not found: {frame_id}")


@router.post("/compose", response_model=ComposeResponse)
def compose(config: ViewerConfig):
    url, valid = compose_for_config(config)
    return ComposeResponse(url=url, custom_parameters_valid=valid)


@router.post("/frames", response_model=FrameState, status_code=201)
def mount_frame(config: ViewerConfig, registry: FrameRegistry = Depends(get_registry)):
    surface = registry.mount(config)
    return surface.snapshot()


@router.get("/frames/{frame_id}", response_model=FrameState)
def get_frame(frame_id: str, registry: FrameRegistry = Depends(get_registry)):
    try:
        return registry.run(frame_id, lambda surface: surface.snapshot())
    except FrameNotFound:
        raise _not_found(frame_id)


@router.put("/frames/{frame_id}/config", response_model=ConfigChangeResponse)
def update_frame_config(frame_id: str, config: ViewerConfig, registry: FrameRegistry = Depends(get_registry)):
    def apply(surface):
        change = surface.apply_config(config)
        return surface.change_response(change)

    try:
        return registry.run(frame_id, apply)
    except FrameNotFound:
        raise _not_found(frame_id)


@router.post("/frames/{frame_id}/samples", response_model=SampleResponse)
def post_sample(frame_id: str, req: SampleRequest, registry: FrameRegistry = Depends(get_registry)):
    def receive(surface):
        outcome = surface.receive_message(req.data, req.generation)
        return SampleResponse(outcome=outcome, display_height=surface.display_height, generation=surface.generation)

    try:
        return registry.run(frame_id, receive)
    except FrameNotFound:
        raise _not_found(frame_id)


@router.delete("/frames/{frame_id}", status_code=204)
def unmount_frame(frame_id: str, registry: FrameRegistry = Depends(get_registry)):
    try:
        registry.unmount(frame_id)
    except FrameNotFound:
        raise _not_found(frame_id)
