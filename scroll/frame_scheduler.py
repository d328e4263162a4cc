"""Периодический таймер захвата кадров."""

from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal


class FrameScheduler(QObject):
    """QTimer, который тикает только пока идёт захват.

    ``stop()`` синхронно гасит таймер: после возврата из него сигнал ``tick``
    больше не испускается.
    """

    tick = Signal()

    def __init__(self, interval_ms: int = 250, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setInterval(max(50, int(interval_ms)))
        self._timer.timeout.connect(self._on_timeout)
        self._armed = False

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def set_interval(self, interval_ms: int) -> None:
        self._timer.setInterval(max(50, int(interval_ms)))

    def is_active(self) -> bool:
        return self._armed

    def connect_tick(self, handler: Callable[[], None]) -> None:
        self.tick.connect(handler)

    def start(self) -> None:
        self._armed = True
        if not self._timer.isActive():
            self._timer.start()

    def stop(self) -> None:
        self._armed = False
        if self._timer.isActive():
            self._timer.stop()

    def _on_timeout(self) -> None:
        # Событие таймера могло встать в очередь до stop().
        if self._armed:
            self.tick.emit()
