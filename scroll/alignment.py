"""Оценка вертикального смещения между двумя соседними кадрами."""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import cv2
import numpy as np

from .frame import Frame


class AlignmentEngine:
    """Находит сдвиг прокрутки через фазовую корреляцию (cv2.phaseCorrelate).

    Положительный результат: контент уехал вниз (новые строки снизу).
    Отрицательный: пользователь прокрутил вверх. ``None``: надёжного
    совпадения нет.

    Поля ``top_margin``/``bottom_margin`` (в points) отрезаются у обоих кадров
    перед сравнением, чтобы закреплённые шапки и подвалы не мешали поиску.
    """

    def __init__(
        self,
        top_margin: float = 200.0,
        bottom_margin: float = 100.0,
        min_response: float = 0.1,
        max_dx: float = 4.0,
    ) -> None:
        self.top_margin = float(top_margin)
        self.bottom_margin = float(bottom_margin)
        self.min_response = float(min_response)
        self.max_dx = float(max_dx)

    @staticmethod
    def crop_vertical_margins(frame: Frame, top: float, bottom: float) -> Tuple[np.ndarray, float]:
        """Возвращает пиксели без полей и логическую высоту результата.

        Если поля не помещаются в кадр, кадр используется целиком.
        """
        if top < 0 or bottom < 0 or top + bottom >= frame.height:
            return frame.pixels, frame.height
        top_px = int(round(top * frame.scale))
        bottom_px = int(round(bottom * frame.scale))
        if top_px + bottom_px >= frame.pixel_height:
            return frame.pixels, frame.height
        cropped = frame.pixels[top_px : frame.pixel_height - bottom_px]
        return cropped, frame.height - top - bottom

    @staticmethod
    def _to_gray(pixels: np.ndarray, height: int, width: int) -> np.ndarray:
        gray = cv2.cvtColor(np.ascontiguousarray(pixels[:height, :width]), cv2.COLOR_RGB2GRAY)
        return gray.astype(np.float32)

    def estimate_offset(
        self,
        current: Frame,
        previous: Frame,
        top_margin: Optional[float] = None,
        bottom_margin: Optional[float] = None,
    ) -> Optional[float]:
        top = self.top_margin if top_margin is None else float(top_margin)
        bottom = self.bottom_margin if bottom_margin is None else float(bottom_margin)

        cur_pixels, cur_height = self.crop_vertical_margins(current, top, bottom)
        prev_pixels, _ = self.crop_vertical_margins(previous, top, bottom)

        height = min(cur_pixels.shape[0], prev_pixels.shape[0])
        width = min(cur_pixels.shape[1], prev_pixels.shape[1])
        if height < 2 or width < 2 or cur_height <= 0:
            return None

        try:
            cur_gray = self._to_gray(cur_pixels, height, width)
            prev_gray = self._to_gray(prev_pixels, height, width)
            (dx, dy), response = cv2.phaseCorrelate(cur_gray, prev_gray)
        except cv2.error as exc:
            logging.debug("Регистрация кадров не удалась: %s", exc)
            return None

        if not (math.isfinite(dx) and math.isfinite(dy) and math.isfinite(response)):
            return None
        if response < self.min_response:
            logging.debug("Низкая уверенность совпадения: %.3f", response)
            return None
        if abs(dx) > self.max_dx:
            logging.debug("Горизонтальный дрейф %.1f px, кадр пропущен", dx)
            return None

        # Пиксели в points по пропорции всего кадра, а не обрезанной полосы.
        return round(dy) * current.height / current.pixel_height
