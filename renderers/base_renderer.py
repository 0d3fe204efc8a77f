from abc import ABC, abstractmethod
from typing import List
import numpy as np
from PIL import Image
from core.scene import Scene, RenderSettings


class BaseRenderer(ABC):
    """
    A renderer turns a populated Scene into a float raster. The scene is
    treated as read-only; image size, sampling and parallelism come from
    RenderSettings. Writing or showing the raster is left to the caller
    (see raster_to_image).
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def render(self, scene: Scene, settings: RenderSettings, show_progress: bool = False) -> np.ndarray:
        """
        Raster of shape (settings.height, settings.width, 3), float64 RGB,
        every component in [0, 1]. Row 0 is the top of the image.
        With show_progress, status lines and progress ticks go to stdout.
        """

    @abstractmethod
    def get_capabilities(self) -> List[str]:
        """Feature names such as "soft_shadows" or "octree_acceleration"."""

    def get_name(self) -> str:
        return self.name

    def supports(self, feature: str) -> bool:
        return feature in self.get_capabilities()


class RendererFactory:
    """Registry of renderer classes by name; modules register on import."""

    _renderers = {}

    @classmethod
    def register(cls, name: str, renderer_class):
        cls._renderers[name] = renderer_class

    @classmethod
    def create(cls, name: str, **kwargs) -> BaseRenderer:
        if name not in cls._renderers:
            raise ValueError(f"Unknown renderer: {name}")
        return cls._renderers[name](**kwargs)

    @classmethod
    def list_available(cls) -> List[str]:
        return list(cls._renderers.keys())


def raster_to_image(raster: np.ndarray) -> Image.Image:
    """Map a [0, 1] float raster to an 8-bit RGB image, rounding to nearest."""
    pixels = np.clip(np.asarray(raster, dtype=np.float64) * 255.0 + 0.5, 0, 255).astype(np.uint8)
    return Image.fromarray(pixels)
