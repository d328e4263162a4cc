import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import mss
import mss.exception
import numpy as np

from scroll.errors import CaptureError, SaveError
from scroll.frame import Frame, Region
from scroll.settings import QualityMode

APP_NAME = "ScrollSnap"
APP_VERSION = "1.0.0"
CONFIG_PATH = Path.home() / ".scrollsnap_config.json"
DEFAULT_SAVE_DIR = Path.home() / "Pictures" / "ScrollSnap"
FILENAME_TIME_FORMAT = "%Y-%m-%d at %H.%M.%S"

DEFAULT_CONFIG = {
    "capture_interval_ms": 250,
    "min_selection_size": 20,
    "align_top_margin": 200,
    "align_bottom_margin": 100,
    "align_min_response": 0.1,
    "quality_mode": QualityMode.LOSSY.value,
    "jpeg_quality": 75,
    "save_directory": str(DEFAULT_SAVE_DIR),
    "open_after_save": False,
    "copy_to_clipboard": True,
    "log_level": "INFO",
}


def load_config() -> dict:
    cfg = DEFAULT_CONFIG.copy()
    if CONFIG_PATH.exists():
        try:
            data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                cfg.update({k: v for k, v in data.items() if k in DEFAULT_CONFIG})
        except Exception:
            logging.warning("Не удалось прочитать конфиг %s, используются значения по умолчанию", CONFIG_PATH)
    return cfg


def save_config(cfg: dict) -> None:
    data = DEFAULT_CONFIG.copy()
    data.update({k: v for k, v in cfg.items() if k in DEFAULT_CONFIG})
    CONFIG_PATH.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def save_directory(cfg: dict) -> Path:
    raw = cfg.get("save_directory") or DEFAULT_SAVE_DIR
    try:
        return Path(str(raw)).expanduser()
    except Exception:
        return DEFAULT_SAVE_DIR


def next_capture_path(directory: Path, mode: QualityMode, now: Optional[datetime] = None) -> Path:
    stamp = (now or datetime.now()).strftime(FILENAME_TIME_FORMAT)
    candidate = directory / f"Screenshot {stamp}{mode.extension}"
    idx = 2
    while candidate.exists():
        candidate = directory / f"Screenshot {stamp} ({idx}){mode.extension}"
        idx += 1
    return candidate


def save_capture(
    frame: Frame,
    mode: QualityMode,
    directory: Path,
    jpeg_quality: int = 75,
    now: Optional[datetime] = None,
) -> Path:
    """Сохраняет склеенное изображение: JPEG с потерями или PNG без потерь."""
    img = frame.to_pil()
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path = next_capture_path(directory, mode, now)
        if mode is QualityMode.LOSSY:
            img.save(path, format="JPEG", quality=int(jpeg_quality), optimize=True)
        else:
            img.save(path, format="PNG", optimize=True)
    except (OSError, ValueError) as exc:
        raise SaveError(f"Не удалось сохранить изображение: {exc}") from exc
    logging.info("Скролл-снимок сохранён: %s (%s)", path, mode.value)
    return path


class ScreenGrabber:
    """Снимает прямоугольник экрана через MSS.

    Область задаётся в логических координатах Qt; физические пиксели
    получаются умножением на devicePixelRatio экрана.
    """

    def __init__(self):
        self._sct = mss.mss()

    @staticmethod
    def _phys_box(region: Region, scale: float) -> dict:
        return {
            "left": int(round(region.x * scale)),
            "top": int(round(region.y * scale)),
            "width": int(round(region.width * scale)),
            "height": int(round(region.height * scale)),
        }

    def capture_region(self, region: Region, scale: float = 1.0) -> Frame:
        if region.is_empty():
            raise CaptureError("Пустая область захвата")
        scale = float(scale) if scale > 0 else 1.0
        box = self._phys_box(region, scale)
        if box["width"] <= 0 or box["height"] <= 0:
            raise CaptureError("Пустая область захвата")
        try:
            shot = self._sct.grab(box)
        except mss.exception.ScreenShotError as exc:
            raise CaptureError(f"Ошибка захвата экрана: {exc}") from exc
        pixels = np.frombuffer(shot.rgb, dtype=np.uint8).reshape(shot.height, shot.width, 3)
        # Логический размер берём из пикселей: mss округляет дробную область.
        return Frame.from_array(pixels, scale)

    def close(self) -> None:
        try:
            self._sct.close()
        except Exception as exc:
            logging.debug("Не удалось закрыть MSS: %s", exc)


class CaptureSaver:
    """Приёмник итогового изображения: пишет файл в папку из конфига."""

    def __init__(self, cfg: dict):
        self.cfg = cfg

    def save(self, image: Frame, mode: QualityMode) -> Path:
        return save_capture(
            image,
            mode,
            save_directory(self.cfg),
            jpeg_quality=self.cfg.get("jpeg_quality", 75),
        )
