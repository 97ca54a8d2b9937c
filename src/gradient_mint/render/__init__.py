from .compositor import DEFAULT_OPACITY, GradientCompositor
from .types import RenderedArtifact, SourceImage

__all__ = [
    "DEFAULT_OPACITY",
    "GradientCompositor",
    "RenderedArtifact",
    "SourceImage",
]
