"""Кадр захвата и прямоугольник области."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np
from PIL import Image


@dataclass(frozen=True)
class Region:
    """Прямоугольник в логических координатах (points)."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def at(cls, point: Tuple[float, float]) -> "Region":
        return cls(float(point[0]), float(point[1]), 0.0, 0.0)

    @classmethod
    def between(cls, p1: Tuple[float, float], p2: Tuple[float, float]) -> "Region":
        left, right = sorted([float(p1[0]), float(p2[0])])
        top, bottom = sorted([float(p1[1]), float(p2[1])])
        return cls(left, top, right - left, bottom - top)

    @property
    def area(self) -> float:
        return self.width * self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True, eq=False)
class Frame:
    """Неизменяемый снимок: RGB-пиксели + логический размер + масштаб.

    ``size`` задаётся в points, ``scale`` в пикселях на point. Высота в пикселях
    не обязана быть ровно ``height * scale``: при склейке смещения в points
    округляются до целых пикселей.
    """

    pixels: np.ndarray = field(repr=False)
    size: Tuple[float, float]
    scale: float = 1.0

    def __post_init__(self) -> None:
        pixels = self.pixels
        if pixels is None or pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError("Неподдерживаемый формат кадра")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError("Пустой кадр")
        if pixels.shape[2] == 4:
            pixels = pixels[:, :, :3]
        if pixels.flags.writeable or not pixels.flags.c_contiguous:
            pixels = np.ascontiguousarray(pixels, dtype=np.uint8).copy()
            pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)
        object.__setattr__(self, "size", (float(self.size[0]), float(self.size[1])))
        object.__setattr__(self, "scale", float(self.scale) if self.scale > 0 else 1.0)

    @classmethod
    def from_array(cls, pixels: np.ndarray, scale: float = 1.0) -> "Frame":
        """Создаёт кадр, вычисляя логический размер из пикселей."""
        scale = float(scale) if scale > 0 else 1.0
        height, width = pixels.shape[:2]
        return cls(pixels, (width / scale, height / scale), scale)

    @property
    def width(self) -> float:
        return self.size[0]

    @property
    def height(self) -> float:
        return self.size[1]

    @property
    def pixel_width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def pixel_height(self) -> int:
        return int(self.pixels.shape[0])

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.asarray(self.pixels))
