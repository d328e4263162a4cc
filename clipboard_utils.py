from __future__ import annotations

import struct
import sys
from io import BytesIO

import numpy as np
from PySide6.QtCore import QByteArray, QMimeData
from PySide6.QtGui import QGuiApplication, QImage

from scroll.frame import Frame

# Форматы, под которыми Windows-приложения ищут картинку в буфере.
WINDOWS_PNG_MIME = 'application/x-qt-windows-mime;value="PNG"'
WINDOWS_DIB_MIME = 'application/x-qt-windows-mime;value="CF_DIB"'


def frame_png_bytes(frame: Frame) -> bytes:
    buffer = BytesIO()
    frame.to_pil().save(buffer, format="PNG")
    return buffer.getvalue()


def frame_dib_bytes(frame: Frame) -> bytes:
    """CF_DIB: BITMAPINFOHEADER + 24-битные BGR-строки снизу вверх, выровненные до 4 байт."""
    height, width = frame.pixel_height, frame.pixel_width
    stride = ((width * 24 + 31) // 32) * 4
    rows = np.zeros((height, stride), dtype=np.uint8)
    rows[:, : width * 3] = frame.pixels[::-1, :, ::-1].reshape(height, width * 3)
    header = struct.pack(
        "<IiiHHIIiiII",
        40,  # biSize
        width,
        height,  # положительная высота: строки снизу вверх
        1,  # biPlanes
        24,  # biBitCount
        0,  # BI_RGB
        stride * height,
        2835,  # ~72 DPI
        2835,
        0,
        0,
    )
    return header + rows.tobytes()


def copy_frame_to_clipboard(frame: Frame) -> QImage:
    """Кладёт снимок в системный буфер обмена как изображение и PNG."""
    png_data = frame_png_bytes(frame)
    qimg = QImage.fromData(png_data, "PNG")

    mime = QMimeData()
    mime.setImageData(qimg)
    png_qbytes = QByteArray(png_data)
    mime.setData("image/png", png_qbytes)
    if sys.platform.startswith("win"):  # pragma: no cover - platform specific
        mime.setData(WINDOWS_PNG_MIME, png_qbytes)
        mime.setData(WINDOWS_DIB_MIME, QByteArray(frame_dib_bytes(frame)))

    QGuiApplication.clipboard().setMimeData(mime)
    return qimg
