"""Параметры скролл-захвата, собранные из конфигурации приложения."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class QualityMode(str, Enum):
    """Режим сохранения итогового изображения."""

    LOSSY = "lossy"  # JPEG, маленькие файлы для чтения
    LOSSLESS = "lossless"  # PNG без потерь

    @classmethod
    def parse(cls, value: Any) -> "QualityMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.LOSSY

    @property
    def extension(self) -> str:
        return ".jpg" if self is QualityMode.LOSSY else ".png"


@dataclass(frozen=True)
class CaptureSettings:
    capture_interval_ms: int = 250
    min_selection_size: float = 20.0
    align_top_margin: float = 200.0
    align_bottom_margin: float = 100.0
    align_min_response: float = 0.1
    quality_mode: QualityMode = QualityMode.LOSSY
    jpeg_quality: int = 75

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "CaptureSettings":
        """Строит настройки из словаря конфигурации, игнорируя битые значения."""
        defaults = cls()

        def _number(key: str, default, cast, minimum):
            try:
                value = cast(cfg.get(key, default))
            except (TypeError, ValueError):
                return default
            return value if value >= minimum else default

        return cls(
            capture_interval_ms=_number("capture_interval_ms", defaults.capture_interval_ms, int, 50),
            min_selection_size=_number("min_selection_size", defaults.min_selection_size, float, 0.0),
            align_top_margin=_number("align_top_margin", defaults.align_top_margin, float, 0.0),
            align_bottom_margin=_number("align_bottom_margin", defaults.align_bottom_margin, float, 0.0),
            align_min_response=_number("align_min_response", defaults.align_min_response, float, 0.0),
            quality_mode=QualityMode.parse(cfg.get("quality_mode", defaults.quality_mode)),
            jpeg_quality=max(1, min(100, _number("jpeg_quality", defaults.jpeg_quality, int, 1))),
        )
