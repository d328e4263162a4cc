"""Конечный автомат скролл-захвата: Idle, Drawing, Capturing."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol, Tuple

from PySide6.QtCore import QObject, Signal

from .alignment import AlignmentEngine
from .errors import CaptureError, SaveError
from .frame import Frame, Region
from .frame_scheduler import FrameScheduler
from .settings import CaptureSettings, QualityMode
from .stitch_accumulator import StitchAccumulator


class CapturePhase(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    CAPTURING = "capturing"


class CaptureMode(str, Enum):
    SCROLL = "scroll"  # кадры склеиваются, пока пользователь прокручивает
    REGION = "region"  # один снимок области сразу после выделения


@dataclass(frozen=True)
class CaptureSession:
    """Всё состояние одной сессии; каждый переход заменяет значение целиком."""

    id: int = 0
    phase: CapturePhase = CapturePhase.IDLE
    mode: CaptureMode = CaptureMode.SCROLL
    region: Region = Region()
    anchor: Tuple[float, float] = (0.0, 0.0)
    scale: float = 1.0
    quality_mode: QualityMode = QualityMode.LOSSY


class FrameSource(Protocol):
    def capture_region(self, region: Region, scale: float) -> Frame: ...


class OutputSink(Protocol):
    def save(self, image: Frame, mode: QualityMode) -> Path: ...


class CaptureWorkflow(QObject):
    """Ведёт одну сессию скролл-захвата.

    События, недопустимые в текущей фазе, молча игнорируются: повторный клик
    «Стоп» или запоздалое событие мыши не должны ломать автомат.
    """

    phase_changed = Signal(str)
    region_changed = Signal()
    frame_added = Signal(int)
    image_ready = Signal(object)
    capture_saved = Signal(str)
    error_occurred = Signal(str)

    def __init__(
        self,
        source: FrameSource,
        sink: OutputSink,
        settings: Optional[CaptureSettings] = None,
        accumulator: Optional[StitchAccumulator] = None,
        scheduler: Optional[FrameScheduler] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.settings = settings or CaptureSettings()
        self._source = source
        self._sink = sink
        if accumulator is None:
            accumulator = StitchAccumulator(
                AlignmentEngine(
                    top_margin=self.settings.align_top_margin,
                    bottom_margin=self.settings.align_bottom_margin,
                    min_response=self.settings.align_min_response,
                )
            )
        self._accumulator = accumulator
        self._scheduler = scheduler or FrameScheduler(self.settings.capture_interval_ms, self)
        self._scheduler.connect_tick(self.tick)
        self._ids = itertools.count(1)
        self._frames_sent = 0
        self._quality_mode = self.settings.quality_mode
        self._session = CaptureSession(quality_mode=self._quality_mode)

    # ---- state -------------------------------------------------------
    @property
    def session(self) -> CaptureSession:
        return self._session

    @property
    def phase(self) -> CapturePhase:
        return self._session.phase

    @property
    def region(self) -> Region:
        return self._session.region

    @property
    def quality_mode(self) -> QualityMode:
        return self._quality_mode

    @quality_mode.setter
    def quality_mode(self, mode: QualityMode) -> None:
        self._quality_mode = QualityMode.parse(mode)
        if self._session.phase is not CapturePhase.IDLE:
            self._session = replace(self._session, quality_mode=self._quality_mode)

    @property
    def accumulator(self) -> StitchAccumulator:
        return self._accumulator

    def _set_session(self, session: CaptureSession) -> None:
        previous = self._session.phase
        self._session = session
        if session.phase is not previous:
            logging.info("Скролл-захват: %s -> %s", previous.value, session.phase.value)
            self.phase_changed.emit(session.phase.value)

    def _ignored(self, event: str) -> None:
        logging.debug("Событие %s проигнорировано в фазе %s", event, self._session.phase.value)

    def _reset(self) -> None:
        self._frames_sent = 0
        self._set_session(CaptureSession(quality_mode=self.quality_mode))

    # ---- drawing -----------------------------------------------------
    def activate(self, mode: CaptureMode = CaptureMode.SCROLL) -> bool:
        if self.phase is not CapturePhase.IDLE:
            logging.warning("activate() вызван не в фазе idle: %s", self.phase.value)
            return False
        self._frames_sent = 0
        self._set_session(
            CaptureSession(
                id=next(self._ids),
                phase=CapturePhase.DRAWING,
                mode=CaptureMode(mode),
                quality_mode=self.quality_mode,
            )
        )
        return True

    def pointer_down(self, point: Tuple[float, float], scale: float = 1.0) -> None:
        if self.phase is not CapturePhase.DRAWING:
            return self._ignored("pointer_down")
        anchor = (float(point[0]), float(point[1]))
        self._session = replace(self._session, anchor=anchor, region=Region.at(anchor), scale=scale)
        self.region_changed.emit()

    def pointer_drag(self, point: Tuple[float, float]) -> None:
        if self.phase is not CapturePhase.DRAWING:
            return self._ignored("pointer_drag")
        self._session = replace(self._session, region=Region.between(self._session.anchor, point))
        self.region_changed.emit()

    def pointer_up(self) -> bool:
        """Завершает выделение; True, если снимок сделан или начался скролл-захват."""
        if self.phase is not CapturePhase.DRAWING:
            self._ignored("pointer_up")
            return False
        region = self._session.region
        minimum = self.settings.min_selection_size
        if not (region.width > minimum and region.height > minimum):
            logging.info("Область %.0fx%.0f слишком мала, захват отменён", region.width, region.height)
            self._reset()
            return False

        try:
            first = self._source.capture_region(region, self._session.scale)
        except CaptureError as exc:
            logging.error("Не удалось снять первый кадр: %s", exc)
            self._reset()
            self.error_occurred.emit(f"Не удалось снять первый кадр: {exc}")
            return False

        if self._session.mode is CaptureMode.REGION:
            logging.info("Снимок области: %.0fx%.0f pt", first.width, first.height)
            self._deliver(first, self._session.quality_mode)
            return True

        session = replace(self._session, phase=CapturePhase.CAPTURING)
        self._accumulator.start(first, session.id)
        self._set_session(session)
        self._scheduler.start()
        logging.info("Первый кадр снят: %.0fx%.0f pt", first.width, first.height)
        return True

    # ---- capturing ---------------------------------------------------
    def tick(self) -> None:
        if self.phase is not CapturePhase.CAPTURING:
            return
        session = self._session
        try:
            frame = self._source.capture_region(session.region, session.scale)
        except CaptureError as exc:
            logging.debug("Кадр пропущен: %s", exc)
            return
        # Сессия могла смениться, пока шёл захват.
        if self._session.id != session.id or self.phase is not CapturePhase.CAPTURING:
            return
        self._accumulator.add_frame(frame, session.id)
        self._frames_sent += 1
        self.frame_added.emit(self._frames_sent)

    def stop(self) -> Optional[Path]:
        """Останавливает захват, дожидается склейки и отдаёт результат на сохранение."""
        if self.phase is not CapturePhase.CAPTURING:
            self._ignored("stop")
            return None
        self._scheduler.stop()
        session = self._session
        try:
            image = self._accumulator.finalize(session.id).result()
        except Exception as exc:  # noqa: BLE001
            logging.exception("Ошибка завершения склейки: %s", exc)
            image = None

        if image is None:
            logging.error("Склейка не вернула изображения")
            self._reset()
            self.error_occurred.emit("Склейка не вернула изображения")
            return None
        logging.info("Итоговое изображение %.0fx%.0f pt", image.width, image.height)
        return self._deliver(image, session.quality_mode)

    def _deliver(self, image: Frame, mode: QualityMode) -> Optional[Path]:
        """Отдаёт готовое изображение подписчикам и приёмнику, затем возвращает автомат в idle."""
        self.image_ready.emit(image)
        saved: Optional[Path] = None
        try:
            saved = self._sink.save(image, mode)
        except SaveError as exc:
            logging.exception("Ошибка сохранения снимка: %s", exc)
            self.error_occurred.emit(str(exc))
        self._reset()
        if saved is not None:
            self.capture_saved.emit(str(saved))
        return saved

    def cancel(self) -> None:
        if self.phase is CapturePhase.IDLE:
            return self._ignored("cancel")
        self._scheduler.stop()
        if self.phase is CapturePhase.CAPTURING:
            self._accumulator.discard(self._session.id)
        logging.info("Скролл-захват отменён")
        self._reset()

    def shutdown(self) -> None:
        self.cancel()
        self._accumulator.shutdown(wait=False)
