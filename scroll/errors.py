"""Ошибки внешних участников скролл-захвата."""


class CaptureError(RuntimeError):
    """Кадр не получен: нет прав, пустая область или сбой захвата."""


class SaveError(RuntimeError):
    """Итоговое изображение не удалось записать."""
