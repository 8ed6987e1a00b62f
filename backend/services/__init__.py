"""Backend services."""

from services.frames import FrameNotFound, FrameRegistry, get_registry
from services.surface import EmbeddingSurface, parse_height_message

__all__ = [
    "EmbeddingSurface",
    "FrameNotFound",
    "FrameRegistry",
    "get_registry",
    "parse_height_message",
]
