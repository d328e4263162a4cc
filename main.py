import logging
import sys
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QDir, QLockFile
from PySide6.QtWidgets import QApplication, QMessageBox

from gui import App
from logic import APP_NAME, load_config

LOG_FORMAT = "%(asctime)s %(levelname)s %(threadName)s: %(message)s"

# Живут до выхода из приложения, иначе блокировка и окна будут собраны GC.
_LOCK: Optional[QLockFile] = None
_APP: Optional[App] = None


def setup_logging(cfg: dict) -> None:
    level = getattr(logging, str(cfg.get("log_level", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def acquire_single_instance(lock_path: Path) -> Optional[QLockFile]:
    """Возвращает захваченную блокировку или None, если ScrollSnap уже работает."""
    lock = QLockFile(str(lock_path))
    lock.setStaleLockTime(0)
    if lock.tryLock(500):
        return lock
    # Процесс-владелец мог упасть, не сняв блокировку.
    if lock.removeStaleLockFile() and lock.tryLock(0):
        return lock
    return None


def main() -> int:
    global _LOCK, _APP
    cfg = load_config()
    setup_logging(cfg)

    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)
    app.setApplicationName(APP_NAME)

    _LOCK = acquire_single_instance(Path(QDir.tempPath()) / f"{APP_NAME}.lock")
    if _LOCK is None:
        logging.warning("%s уже запущен, второй экземпляр не стартует", APP_NAME)
        QMessageBox.information(None, APP_NAME, f"{APP_NAME} уже запущен.")
        return 1

    _APP = App()
    logging.info("%s запущен", APP_NAME)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
