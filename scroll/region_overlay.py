"""Оверлей выбора области и панель управления скролл-захватом."""

from __future__ import annotations

from typing import Optional, Sequence

from PySide6.QtCore import QPoint, QRect, QSize, Qt, Signal
from PySide6.QtGui import QColor, QGuiApplication, QPainter, QPen
from PySide6.QtWidgets import QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

from .capture_workflow import CapturePhase, CaptureWorkflow

_BORDER_WIDTH = 3
_HINT_STYLE = """
    color: white;
    background: rgba(0, 0, 0, 200);
    padding: 10px 15px;
    font-size: 13px;
    border-radius: 8px;
    border: 1px solid rgba(80, 80, 90, 100);
"""


def paint_overlay(painter: QPainter, bounds: QRect, rect: QRect, phase: CapturePhase) -> None:
    """Рисует оверлей. Все линии лежат снаружи ``rect``: содержимое области попадает в кадр чистым."""
    pad = _BORDER_WIDTH
    if phase is CapturePhase.DRAWING:
        painter.fillRect(bounds, QColor(0, 0, 0, 76))
        if rect.width() > 0 and rect.height() > 0:
            painter.save()
            painter.setCompositionMode(QPainter.CompositionMode_Clear)
            painter.fillRect(rect, Qt.transparent)
            painter.restore()
            painter.setPen(QPen(QColor(255, 255, 255), 2, Qt.DashLine))
            painter.drawRect(rect.adjusted(-pad, -pad, pad, pad))
    elif phase is CapturePhase.CAPTURING:
        painter.setPen(QPen(QColor(230, 40, 40), _BORDER_WIDTH))
        painter.drawRect(rect.adjusted(-pad, -pad, pad, pad))


def _clamp_into(point: QPoint, size: QSize, area: QRect) -> QRect:
    x = max(area.left(), min(point.x(), area.right() - size.width() + 1))
    y = max(area.top(), min(point.y(), area.bottom() - size.height() + 1))
    return QRect(QPoint(x, y), size)


def panel_position(region: QRect, size: QSize, areas: Sequence[QRect], gap: int) -> QPoint:
    """Место для панели вне области захвата.

    Перебирает экраны из ``areas``: снизу, сверху, справа, слева от области,
    затем углы экрана. Если свободного места нет, панель ставится под областью,
    даже за краем экрана.
    """
    guard = region.adjusted(-gap, -gap, gap, gap)
    width, height = size.width(), size.height()
    for area in areas:
        candidates = (
            QPoint(region.left(), guard.bottom() + 1),
            QPoint(region.left(), guard.top() - height),
            QPoint(guard.right() + 1, region.top()),
            QPoint(guard.left() - width, region.top()),
            area.topLeft(),
            area.topRight(),
            area.bottomLeft(),
            area.bottomRight(),
        )
        for point in candidates:
            rect = _clamp_into(point, size, area)
            if area.contains(rect) and not rect.intersects(guard):
                return rect.topLeft()
    return QPoint(region.left(), guard.bottom() + 1)


class ScrollOverlay(QWidget):
    """Полупрозрачный слой на весь виртуальный рабочий стол.

    В фазе рисования переводит события мыши в вызовы ``CaptureWorkflow``.
    В фазе захвата пропускает ввод насквозь и рисует только рамку снаружи
    области, чтобы она не попала в кадр.
    """

    canceled = Signal()

    def __init__(self, workflow: CaptureWorkflow) -> None:
        super().__init__(None, Qt.FramelessWindowHint | Qt.Tool | Qt.WindowStaysOnTopHint)
        self.setAttribute(Qt.WA_TranslucentBackground)
        self.setCursor(Qt.CrossCursor)
        self.setFocusPolicy(Qt.StrongFocus)
        primary = QGuiApplication.primaryScreen()
        if primary is None:
            raise RuntimeError("Не удалось определить основной экран для overlay.")
        self.setGeometry(primary.virtualGeometry())

        self._workflow = workflow
        self._workflow.region_changed.connect(self.update)
        self._workflow.phase_changed.connect(self._on_phase_changed)

        self._help = QLabel(self)
        self._help.setText("ЛКМ: выделить область  •  Esc: отмена")
        self._help.setStyleSheet(_HINT_STYLE)
        self._help.adjustSize()
        self._help.move(30, 30)

    def showEvent(self, event):
        super().showEvent(event)
        if self._workflow.phase is CapturePhase.DRAWING:
            self.activateWindow()
            self.raise_()
            self.grabKeyboard()

    def keyPressEvent(self, event):
        if event.key() == Qt.Key_Escape:
            self.canceled.emit()
            return
        super().keyPressEvent(event)

    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton:
            return
        pos = event.globalPosition()
        screen = QGuiApplication.screenAt(pos.toPoint()) or self.screen()
        scale = float(screen.devicePixelRatio()) if screen is not None else 1.0
        self._workflow.pointer_down((pos.x(), pos.y()), scale)

    def mouseMoveEvent(self, event):
        pos = event.globalPosition()
        self._workflow.pointer_drag((pos.x(), pos.y()))

    def mouseReleaseEvent(self, event):
        if event.button() != Qt.LeftButton:
            return
        self.releaseKeyboard()
        self._workflow.pointer_up()

    def _local_rect(self) -> QRect:
        x, y, w, h = self._workflow.region.as_tuple()
        geo = self.geometry()
        return QRect(int(round(x)) - geo.x(), int(round(y)) - geo.y(), int(round(w)), int(round(h)))

    def _on_phase_changed(self, phase: str) -> None:
        if phase == CapturePhase.CAPTURING.value:
            self._help.hide()
            self.setCursor(Qt.ArrowCursor)
            # Смена флагов прячет окно, поэтому показываем заново.
            self.setWindowFlag(Qt.WindowTransparentForInput, True)
            self.show()
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing, True)
        paint_overlay(painter, self.rect(), self._local_rect(), self._workflow.phase)
        painter.end()


class ScrollControlPanel(QWidget):
    """Небольшая панель «Стоп / Отмена» рядом с областью захвата."""

    stop_requested = Signal()
    cancel_requested = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent, Qt.FramelessWindowHint | Qt.Tool | Qt.WindowStaysOnTopHint)
        self.setWindowTitle("Скролл-захват")
        self.setStyleSheet(
            "QWidget { background: rgba(30, 30, 36, 235); color: white; border-radius: 8px; }"
            "QPushButton { background: rgba(60, 60, 70, 200); padding: 6px 14px; }"
            "QPushButton:hover { background: rgba(90, 140, 220, 200); }"
        )

        layout = QVBoxLayout(self)
        self.hint = QLabel("Прокручивайте содержимое. Стоп сохранит снимок.")
        self.frames_label = QLabel("Кадров: 0")
        layout.addWidget(self.hint)
        layout.addWidget(self.frames_label)

        buttons = QHBoxLayout()
        self.btn_stop = QPushButton("Стоп")
        self.btn_cancel = QPushButton("Отмена")
        self.btn_stop.clicked.connect(self._on_stop)
        self.btn_cancel.clicked.connect(self.cancel_requested.emit)
        buttons.addWidget(self.btn_stop)
        buttons.addWidget(self.btn_cancel)
        layout.addLayout(buttons)

    def _on_stop(self) -> None:
        self.btn_stop.setEnabled(False)
        self.stop_requested.emit()

    def update_frames(self, count: int) -> None:
        self.frames_label.setText(f"Кадров: {count}")

    def keyPressEvent(self, event) -> None:
        if event.key() == Qt.Key_Escape:
            self.cancel_requested.emit()
            return
        super().keyPressEvent(event)

    def place_near(self, region: QRect) -> None:
        """Ставит панель рядом с областью так, чтобы она не попала в кадр."""
        self.adjustSize()
        primary = QGuiApplication.screenAt(region.center()) or QGuiApplication.primaryScreen()
        areas = [primary.availableGeometry()] if primary is not None else []
        areas += [s.availableGeometry() for s in QGuiApplication.screens() if s is not primary]
        self.move(panel_position(region, self.size(), areas, _BORDER_WIDTH * 2 + 8))
