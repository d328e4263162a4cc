from PySide6.QtGui import QIcon, QPixmap, QPainter, QPen, QColor, QFont
from PySide6.QtCore import Qt

ICON_BASE = (240, 240, 240)
ICON_WARNING = (240, 80, 80)
ICON_SMALL = 28
ICON_MARGIN_SMALL = 5
ICON_MARGIN_MEDIUM = 7


def _pm(size: int) -> QPixmap:
    pm = QPixmap(size, size)
    pm.fill(Qt.transparent)
    return pm


def make_icon_scroll(size: int = ICON_SMALL) -> QIcon:
    """Рамка со стрелками вверх/вниз, «Скролл-захват»"""
    pm = _pm(size)
    p = QPainter(pm)
    p.setRenderHint(QPainter.Antialiasing)
    p.setPen(QPen(QColor(*ICON_BASE), 2))
    m = ICON_MARGIN_SMALL
    p.drawRect(m, m, size - 2 * m, size - 2 * m)
    cx = size // 2
    p.drawLine(cx, m + 4, cx, size - m - 4)
    p.drawLine(cx, m + 4, cx - 4, m + 8)
    p.drawLine(cx, m + 4, cx + 4, m + 8)
    p.drawLine(cx, size - m - 4, cx - 4, size - m - 8)
    p.drawLine(cx, size - m - 4, cx + 4, size - m - 8)
    p.end()
    return QIcon(pm)


def make_icon_quality(lossless: bool, size: int = ICON_SMALL) -> QIcon:
    """Подпись формата: PNG для режима без потерь, JPG для сжатия"""
    pm = _pm(size)
    p = QPainter(pm)
    p.setRenderHint(QPainter.Antialiasing)
    p.setPen(QPen(QColor(*ICON_BASE), 2))
    font = QFont()
    font.setPixelSize(max(8, size // 3))
    font.setBold(True)
    p.setFont(font)
    p.drawText(pm.rect(), Qt.AlignCenter, "PNG" if lossless else "JPG")
    p.end()
    return QIcon(pm)


def make_icon_close(size: int = ICON_SMALL) -> QIcon:
    """Крестик, «Закрыть»"""
    pm = _pm(size)
    p = QPainter(pm)
    p.setRenderHint(QPainter.Antialiasing)
    p.setPen(QPen(QColor(*ICON_WARNING), 2.5))
    m = ICON_MARGIN_MEDIUM
    p.drawLine(m, m, size - m, size - m)
    p.drawLine(size - m, m, m, size - m)
    p.end()
    return QIcon(pm)


def make_icon_region(size: int = ICON_SMALL) -> QIcon:
    """Пунктирная рамка с уголками, «Снимок области»"""
    pm = _pm(size)
    p = QPainter(pm)
    p.setRenderHint(QPainter.Antialiasing)
    m = ICON_MARGIN_SMALL
    p.setPen(QPen(QColor(*ICON_BASE), 1.5, Qt.DashLine))
    p.drawRect(m, m, size - 2 * m, size - 2 * m)
    p.setPen(QPen(QColor(*ICON_BASE), 2.5))
    c = 5
    for x, y, dx, dy in ((m, m, 1, 1), (size - m, m, -1, 1), (m, size - m, 1, -1), (size - m, size - m, -1, -1)):
        p.drawLine(x, y, x + dx * c, y)
        p.drawLine(x, y, x, y + dy * c)
    p.end()
    return QIcon(pm)


def make_icon_folder(size: int = ICON_SMALL) -> QIcon:
    """Папка, «Открыть папку сохранения»"""
    pm = _pm(size)
    p = QPainter(pm)
    p.setRenderHint(QPainter.Antialiasing)
    p.setPen(QPen(QColor(*ICON_BASE), 2))
    m = ICON_MARGIN_SMALL
    top = m + 4
    p.drawLine(m, top, m + 7, top)
    p.drawLine(m + 7, top, m + 9, top + 3)
    p.drawRect(m, top + 3, size - 2 * m, size - top - m - 3)
    p.end()
    return QIcon(pm)
