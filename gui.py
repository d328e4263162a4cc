# -*- coding: utf-8 -*-
import logging
from pathlib import Path

from PySide6.QtCore import Qt, Signal, QObject, QSize, QUrl
from PySide6.QtGui import QDesktopServices, QGuiApplication
from PySide6.QtWidgets import (QWidget, QLabel, QHBoxLayout, QVBoxLayout, QToolButton, QMessageBox, QApplication)
from clipboard_utils import copy_frame_to_clipboard
from logic import APP_NAME, load_config, save_config, save_directory, ScreenGrabber, CaptureSaver
from scroll import QualityMode, ScrollCaptureManager
from icons import make_icon_scroll, make_icon_region, make_icon_quality, make_icon_folder, make_icon_close


def open_save_folder(cfg: dict) -> Path:
    """Открывает папку сохранения в файловом менеджере, создавая её при необходимости."""
    directory = save_directory(cfg)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logging.warning("Не удалось создать папку %s: %s", directory, e)
    QDesktopServices.openUrl(QUrl.fromLocalFile(str(directory)))
    return directory


class Launcher(QWidget):
    start_capture = Signal()
    start_region_capture = Signal()
    open_folder = Signal()
    toggle_quality = Signal()
    quit_requested = Signal()

    def __init__(self, cfg: dict):
        super().__init__()
        self.cfg = cfg
        self.setWindowTitle(APP_NAME)
        self.setWindowFlags(Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint)
        self.setAttribute(Qt.WA_TranslucentBackground)

        self.setFixedSize(400, 104)

        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        container = QWidget()
        container.setStyleSheet("""
            QWidget {
                background: qlineargradient(x1:0, y1:0, x2:0, y2:1,
                    stop:0 rgba(45, 45, 50, 240),
                    stop:1 rgba(25, 25, 30, 240));
                border-radius: 20px;
                border: 1px solid rgba(80, 80, 90, 100);
            }
            QToolButton {
                background: rgba(60, 60, 70, 100);
                border: 1px solid rgba(80, 80, 90, 80);
                border-radius: 12px;
                padding: 8px;
                color: white;
                font-weight: 500;
            }
            QToolButton:hover {
                background: qlineargradient(x1:0, y1:0, x2:0, y2:1,
                    stop:0 rgba(90, 140, 220, 180),
                    stop:1 rgba(70, 120, 200, 180));
                border: 1px solid rgba(120, 160, 240, 150);
            }
            QToolButton:pressed {
                background: rgba(50, 100, 180, 200);
            }
            QLabel {
                color: rgba(200, 200, 210, 180);
                font-size: 11px;
                font-weight: 400;
            }
        """)

        layout = QVBoxLayout(container)
        layout.setContentsMargins(15, 12, 15, 12)
        layout.setSpacing(8)

        title = QLabel(APP_NAME)
        title.setAlignment(Qt.AlignCenter)
        title.setStyleSheet("color: rgba(220, 220, 230, 200); font-size: 13px; font-weight: 600; margin-bottom: 2px;")
        layout.addWidget(title)

        buttons_layout = QHBoxLayout()
        buttons_layout.setSpacing(8)

        self.btn_scroll = QToolButton()
        self.btn_scroll.setIcon(make_icon_scroll())
        self.btn_scroll.setIconSize(QSize(24, 24))
        self.btn_scroll.setToolTip("Выделить область и прокручивать содержимое")
        self.btn_scroll.clicked.connect(self.start_capture.emit)
        self.btn_scroll.setText("Скролл")
        self.btn_scroll.setToolButtonStyle(Qt.ToolButtonTextUnderIcon)
        buttons_layout.addWidget(self.btn_scroll)

        self.btn_region = QToolButton()
        self.btn_region.setIcon(make_icon_region())
        self.btn_region.setIconSize(QSize(24, 24))
        self.btn_region.setToolTip("Обычный снимок выделенной области")
        self.btn_region.clicked.connect(self.start_region_capture.emit)
        self.btn_region.setText("Область")
        self.btn_region.setToolButtonStyle(Qt.ToolButtonTextUnderIcon)
        buttons_layout.addWidget(self.btn_region)

        self.btn_quality = QToolButton()
        self.btn_quality.setIconSize(QSize(24, 24))
        self.btn_quality.setToolTip("JPEG (маленькие файлы) или PNG (без потерь)")
        self.btn_quality.clicked.connect(self._on_quality)
        self.btn_quality.setToolButtonStyle(Qt.ToolButtonTextUnderIcon)
        buttons_layout.addWidget(self.btn_quality)
        self._refresh_quality_button()

        self.btn_folder = QToolButton()
        self.btn_folder.setIcon(make_icon_folder())
        self.btn_folder.setIconSize(QSize(24, 24))
        self.btn_folder.setToolTip("Открыть папку со снимками")
        self.btn_folder.clicked.connect(self.open_folder.emit)
        self.btn_folder.setText("Папка")
        self.btn_folder.setToolButtonStyle(Qt.ToolButtonTextUnderIcon)
        buttons_layout.addWidget(self.btn_folder)

        self.btn_close = QToolButton()
        self.btn_close.setIcon(make_icon_close())
        self.btn_close.setIconSize(QSize(24, 24))
        self.btn_close.setText("Закрыть")
        self.btn_close.setToolTip("Закрыть приложение")
        self.btn_close.clicked.connect(self.quit_requested.emit)
        self.btn_close.setToolButtonStyle(Qt.ToolButtonTextUnderIcon)
        buttons_layout.addWidget(self.btn_close)

        layout.addLayout(buttons_layout)

        self.status = QLabel("")
        self.status.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.status)
        main_layout.addWidget(container)

        self.drag_position = None

        scr = QGuiApplication.primaryScreen().geometry()
        self.move(scr.center().x() - self.width() // 2, scr.top() + 100)

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.drag_position = event.globalPosition().toPoint() - self.frameGeometry().topLeft()

    def mouseMoveEvent(self, event):
        if event.buttons() == Qt.LeftButton and self.drag_position is not None:
            self.move(event.globalPosition().toPoint() - self.drag_position)

    def _refresh_quality_button(self):
        mode = QualityMode.parse(self.cfg.get("quality_mode"))
        lossless = mode is QualityMode.LOSSLESS
        self.btn_quality.setIcon(make_icon_quality(lossless))
        self.btn_quality.setText("Дизайн" if lossless else "Чтение")

    def _on_quality(self):
        current = QualityMode.parse(self.cfg.get("quality_mode"))
        new_mode = QualityMode.LOSSY if current is QualityMode.LOSSLESS else QualityMode.LOSSLESS
        self.cfg["quality_mode"] = new_mode.value
        save_config(self.cfg)
        self._refresh_quality_button()
        self.toggle_quality.emit()

    def show_status(self, text: str):
        self.status.setText(text)


class App(QObject):
    def __init__(self):
        super().__init__()
        self.cfg = load_config()
        self.grabber = ScreenGrabber()
        self.scroll = ScrollCaptureManager(self.cfg, self.grabber, CaptureSaver(self.cfg))
        self.scroll.capture_started.connect(lambda: self.launcher.show_status("Идёт захват…"))
        self.scroll.image_ready.connect(self._on_image_ready)
        self.scroll.capture_completed.connect(self._on_completed)
        self.scroll.error_occurred.connect(self._on_error)

        self.launcher = Launcher(self.cfg)
        self.launcher.start_capture.connect(self.capture)
        self.launcher.start_region_capture.connect(self.capture_region)
        self.launcher.open_folder.connect(self.open_folder)
        self.launcher.toggle_quality.connect(self._on_quality)
        self.launcher.quit_requested.connect(self.quit)
        self.launcher.show()

    def capture(self):
        self._run(self.scroll.start_capture)

    def capture_region(self):
        self._run(self.scroll.start_region_capture)

    def _run(self, start):
        try:
            start()
        except Exception as e:
            logging.exception("Ошибка запуска захвата: %s", e)
            QMessageBox.critical(None, APP_NAME, f"Ошибка съёмки: {e}")

    def open_folder(self):
        open_save_folder(self.cfg)

    def _on_image_ready(self, image):
        if not self.cfg.get("copy_to_clipboard", True):
            return
        try:
            copy_frame_to_clipboard(image)
        except Exception as e:
            logging.exception("Не удалось скопировать снимок в буфер обмена: %s", e)

    def _on_quality(self):
        self.scroll.set_quality_mode(QualityMode.parse(self.cfg.get("quality_mode")))

    def _on_completed(self, path: str):
        self.launcher.show_status(f"Сохранено: {path}")

    def _on_error(self, message: str):
        self.launcher.show_status("")
        QMessageBox.warning(None, APP_NAME, message)

    def quit(self):
        self.scroll.shutdown()
        self.grabber.close()
        self.launcher.close()
        QApplication.instance().quit()
