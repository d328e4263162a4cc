"""Инкрементальная склейка кадров в одно длинное изображение."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .alignment import AlignmentEngine
from .frame import Frame


@dataclass
class StitchState:
    session: int
    canvas: Frame
    last_frame: Frame
    total_height: float


def composite_below(canvas: Frame, frame: Frame, offset: float) -> Frame:
    """Дорисовывает ``frame`` под холстом, удлиняя его на ``offset`` points.

    Сначала кладётся новый кадр (прижатый к низу), затем поверх него холст:
    уже увиденный контент перекрывает зону наложения и прячет дубли
    закреплённых элементов из нового кадра.
    """
    offset_px = int(round(offset * canvas.pixel_height / canvas.height))
    base = canvas.pixels
    total_px = base.shape[0] + offset_px
    width = base.shape[1]

    out = np.full((total_px, width, 3), 255, dtype=np.uint8)
    rows = min(frame.pixel_height, total_px)
    cols = min(frame.pixel_width, width)
    out[total_px - rows :, :cols] = frame.pixels[frame.pixel_height - rows :, :cols]
    out[: base.shape[0], :] = base
    out.setflags(write=False)
    return Frame(out, (canvas.width, canvas.height + offset), canvas.scale)


def crop_bottom(canvas: Frame, amount: float) -> Frame:
    """Отрезает ``amount`` points снизу холста, сохраняя верхнюю часть."""
    if amount <= 0 or amount >= canvas.height:
        return canvas
    new_height = canvas.height - amount
    keep_px = canvas.pixel_height - int(round(amount * canvas.pixel_height / canvas.height))
    keep_px = max(1, min(canvas.pixel_height, keep_px))
    return Frame(canvas.pixels[:keep_px], (canvas.width, new_height), canvas.scale)


class StitchAccumulator:
    """Владелец растущего холста одной сессии.

    Все операции выполняются строго по очереди на единственном рабочем потоке,
    поэтому состояние не требует блокировок. Каждый публичный метод возвращает
    ``Future``; ``finalize`` работает как барьер: он видит все кадры,
    поставленные в очередь до него, и ни одного после.
    """

    def __init__(self, engine: Optional[AlignmentEngine] = None) -> None:
        self.engine = engine or AlignmentEngine()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stitch")
        # Поля ниже трогает только рабочий поток.
        self._state: Optional[StitchState] = None
        self._retired_upto = 0

    # ---- public API (control thread) --------------------------------
    def start(self, initial: Frame, session: int) -> Future:
        return self._executor.submit(self._start, initial, session)

    def add_frame(self, frame: Frame, session: int) -> Future:
        return self._executor.submit(self._add_frame, frame, session)

    def finalize(self, session: int) -> Future:
        return self._executor.submit(self._finalize, session)

    def discard(self, session: int) -> Future:
        return self._executor.submit(self._discard, session)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # ---- worker ------------------------------------------------------
    def _is_retired(self, session: int) -> bool:
        return session <= self._retired_upto

    def _retire(self, session: int) -> None:
        self._retired_upto = max(self._retired_upto, session)
        if self._state is not None and self._state.session <= session:
            self._state = None

    def _start(self, initial: Frame, session: int) -> None:
        if self._is_retired(session):
            logging.debug("Старт для завершённой сессии %s пропущен", session)
            return
        self._state = StitchState(session, initial, initial, initial.height)

    def _add_frame(self, frame: Frame, session: int) -> Optional[float]:
        if self._is_retired(session):
            logging.debug("Опоздавший кадр сессии %s отброшен", session)
            return None
        state = self._state
        if state is None or state.session < session:
            self._start(frame, session)
            return None
        if state.session > session:
            logging.debug("Кадр старой сессии %s отброшен", session)
            return None

        try:
            offset = self.engine.estimate_offset(frame, state.last_frame)
        except Exception:  # noqa: BLE001
            logging.exception("Ошибка оценки смещения кадра")
            offset = None

        if offset is None or offset == 0:
            state.last_frame = frame
            return offset

        if offset > 0:
            try:
                canvas = composite_below(state.canvas, frame, offset)
            except Exception:  # noqa: BLE001
                logging.exception("Ошибка склейки кадра")
                return None
            state.canvas = canvas
            state.total_height += offset
        else:
            amount = abs(offset)
            if amount >= state.total_height:
                logging.debug("Обрезка %.1f pt больше холста, кадр пропущен", amount)
                state.last_frame = frame
                return None
            state.canvas = crop_bottom(state.canvas, amount)
            state.total_height -= amount
        state.last_frame = frame
        return offset

    def _finalize(self, session: int) -> Optional[Frame]:
        state = self._state
        canvas = state.canvas if state is not None and state.session == session else None
        self._retire(session)
        return canvas

    def _discard(self, session: int) -> None:
        self._retire(session)
