import logging
from typing import Optional

from PySide6.QtCore import QObject, QRect, QUrl, Signal, Slot
from PySide6.QtGui import QDesktopServices

from .capture_workflow import CaptureMode, CapturePhase, CaptureWorkflow, FrameSource, OutputSink
from .region_overlay import ScrollControlPanel, ScrollOverlay
from .settings import CaptureSettings, QualityMode


class ScrollCaptureManager(QObject):
    """
    Координирует скролл-захват: оверлей выбора области, панель управления
    и конечный автомат, который склеивает кадры и сохраняет результат.
    """
    # Процесс выбора области начался
    selection_started = Signal()
    # Область выбрана, захват начался
    capture_started = Signal()
    # Итоговое изображение готово (Frame), до сохранения
    image_ready = Signal(object)
    # Захват и склейка завершены, путь к файлу
    capture_completed = Signal(str)
    # Ошибка на одном из этапов
    error_occurred = Signal(str)

    def __init__(
        self,
        cfg: dict,
        source: FrameSource,
        sink: OutputSink,
        workflow: Optional[CaptureWorkflow] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.cfg = cfg
        self.workflow = workflow or CaptureWorkflow(
            source, sink, CaptureSettings.from_config(cfg), parent=self
        )
        self.workflow.phase_changed.connect(self._on_phase_changed)
        self.workflow.frame_added.connect(self._on_frame_added)
        self.workflow.image_ready.connect(self.image_ready)
        self.workflow.capture_saved.connect(self._on_capture_saved)
        self.workflow.error_occurred.connect(self.error_occurred)

        self._overlay: Optional[ScrollOverlay] = None
        self._panel: Optional[ScrollControlPanel] = None

    @property
    def quality_mode(self) -> QualityMode:
        return self.workflow.quality_mode

    def set_quality_mode(self, mode: QualityMode) -> None:
        self.workflow.quality_mode = mode
        self.cfg["quality_mode"] = self.workflow.quality_mode.value
        logging.info("Режим качества: %s", self.workflow.quality_mode.value)

    @Slot()
    def start_capture(self):
        """Запускает полный цикл: выбор области, захват, сохранение."""
        self._begin(CaptureMode.SCROLL)

    @Slot()
    def start_region_capture(self):
        """Обычный снимок области без прокрутки."""
        self._begin(CaptureMode.REGION)

    def _begin(self, mode: CaptureMode) -> None:
        if not self.workflow.activate(mode):
            return
        try:
            self._overlay = ScrollOverlay(self.workflow)
            self._overlay.canceled.connect(self.cancel)
            self._overlay.show()
            self._overlay.raise_()
        except Exception as e:
            logging.exception("Не удалось показать оверлей: %s", e)
            self.workflow.cancel()
            self.error_occurred.emit(f"Не удалось запустить выбор области: {e}")
            return
        self.selection_started.emit()

    @Slot()
    def stop(self):
        self.workflow.stop()

    @Slot()
    def cancel(self):
        self.workflow.cancel()

    def shutdown(self) -> None:
        self.workflow.shutdown()
        self._close_windows()

    # ---- workflow callbacks ----
    @Slot(str)
    def _on_phase_changed(self, phase: str):
        if phase == CapturePhase.CAPTURING.value:
            self._show_panel()
            self.capture_started.emit()
        elif phase == CapturePhase.IDLE.value:
            self._close_windows()

    @Slot(int)
    def _on_frame_added(self, count: int):
        if self._panel:
            self._panel.update_frames(count)

    @Slot(str)
    def _on_capture_saved(self, path: str):
        if self.cfg.get("open_after_save"):
            QDesktopServices.openUrl(QUrl.fromLocalFile(path))
        self.capture_completed.emit(path)

    def _show_panel(self):
        self._panel = ScrollControlPanel()
        self._panel.stop_requested.connect(self.stop)
        self._panel.cancel_requested.connect(self.cancel)
        x, y, w, h = self.workflow.region.as_tuple()
        self._panel.place_near(QRect(int(x), int(y), int(w), int(h)))
        self._panel.show()

    def _close_windows(self):
        if self._panel:
            self._panel.close()
            self._panel = None
        if self._overlay:
            self._overlay.close()
            self._overlay = None
