# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import mss.exception
import numpy as np
from PIL import Image

import logic
from logic import CaptureSaver, ScreenGrabber, load_config, save_capture, save_config
from scroll.errors import CaptureError, SaveError
from scroll.frame import Frame, Region
from scroll.settings import QualityMode

_NOW = datetime(2026, 3, 14, 9, 26, 53)


def _frame(width: int = 16, height: int = 10) -> Frame:
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, :, 0] = 200
    pixels[height // 2 :, :, 2] = 90
    return Frame.from_array(pixels)


class SaveCaptureTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name) / "shots"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_lossy_mode_writes_jpeg(self) -> None:
        path = save_capture(_frame(), QualityMode.LOSSY, self.dir, now=_NOW)
        self.assertEqual(path.name, "Screenshot 2026-03-14 at 09.26.53.jpg")
        with Image.open(path) as img:
            self.assertEqual(img.format, "JPEG")
            self.assertEqual(img.size, (16, 10))

    def test_lossless_mode_keeps_pixels(self) -> None:
        frame = _frame()
        path = save_capture(frame, QualityMode.LOSSLESS, self.dir, now=_NOW)
        self.assertEqual(path.suffix, ".png")
        with Image.open(path) as img:
            self.assertEqual(img.format, "PNG")
            self.assertTrue(np.array_equal(np.asarray(img.convert("RGB")), frame.pixels))

    def test_jpeg_quality_is_forwarded(self) -> None:
        with patch("PIL.Image.Image.save") as save_mock:
            save_capture(_frame(), QualityMode.LOSSY, self.dir, jpeg_quality=75, now=_NOW)
        _, kwargs = save_mock.call_args
        self.assertEqual(kwargs.get("format"), "JPEG")
        self.assertEqual(kwargs.get("quality"), 75)

    def test_name_collision_gets_suffix(self) -> None:
        first = save_capture(_frame(), QualityMode.LOSSY, self.dir, now=_NOW)
        second = save_capture(_frame(), QualityMode.LOSSY, self.dir, now=_NOW)
        self.assertNotEqual(first, second)
        self.assertEqual(second.name, "Screenshot 2026-03-14 at 09.26.53 (2).jpg")

    def test_unwritable_directory_raises_save_error(self) -> None:
        blocker = Path(self._tmp.name) / "blocker"
        blocker.write_text("x", encoding="utf-8")
        with self.assertRaises(SaveError):
            save_capture(_frame(), QualityMode.LOSSLESS, blocker, now=_NOW)

    def test_capture_saver_uses_config_directory(self) -> None:
        saver = CaptureSaver({"save_directory": str(self.dir), "jpeg_quality": 60})
        path = saver.save(_frame(), QualityMode.LOSSY)
        self.assertEqual(path.parent, self.dir)
        self.assertTrue(path.exists())


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "config.json"
        self._patch = patch.object(logic, "CONFIG_PATH", self.path)
        self._patch.start()

    def tearDown(self) -> None:
        self._patch.stop()
        self._tmp.cleanup()

    def test_missing_file_gives_defaults(self) -> None:
        self.assertEqual(load_config(), logic.DEFAULT_CONFIG)

    def test_unknown_keys_are_dropped(self) -> None:
        self.path.write_text(json.dumps({"quality_mode": "lossless", "shape": "ellipse"}), encoding="utf-8")
        cfg = load_config()
        self.assertEqual(cfg["quality_mode"], "lossless")
        self.assertNotIn("shape", cfg)

    def test_broken_file_falls_back_to_defaults(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        self.assertEqual(load_config(), logic.DEFAULT_CONFIG)

    def test_save_roundtrip_filters_keys(self) -> None:
        cfg = load_config()
        cfg["capture_interval_ms"] = 400
        cfg["garbage"] = 1
        save_config(cfg)
        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(data["capture_interval_ms"], 400)
        self.assertNotIn("garbage", data)


class _Shot:
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.rgb = bytes([7]) * (width * height * 3)


class ScreenGrabberTests(unittest.TestCase):
    def _grabber(self, grab):
        sct = MagicMock()
        sct.grab.side_effect = grab
        with patch("logic.mss.mss", return_value=sct):
            grabber = ScreenGrabber()
        return grabber, sct

    def test_region_is_scaled_to_physical_pixels(self) -> None:
        grabber, sct = self._grabber(lambda box: _Shot(box["width"], box["height"]))
        frame = grabber.capture_region(Region(10, 20, 100, 50), 2.0)

        sct.grab.assert_called_once_with({"left": 20, "top": 40, "width": 200, "height": 100})
        self.assertEqual(frame.size, (100.0, 50.0))
        self.assertEqual(frame.pixels.shape, (100, 200, 3))
        self.assertEqual(frame.scale, 2.0)

    def test_fractional_region_size_follows_grabbed_pixels(self) -> None:
        grabber, sct = self._grabber(lambda box: _Shot(box["width"], box["height"]))
        frame = grabber.capture_region(Region(0, 0, 200, 333.5), 1.0)

        self.assertEqual(frame.pixel_height, 334)
        self.assertEqual(frame.size, (200.0, 334.0))

    def test_empty_region_raises_capture_error(self) -> None:
        grabber, sct = self._grabber(lambda box: _Shot(1, 1))
        with self.assertRaises(CaptureError):
            grabber.capture_region(Region(0, 0, 0, 10), 1.0)
        sct.grab.assert_not_called()

    def test_mss_failure_raises_capture_error(self) -> None:
        def _fail(box):
            raise mss.exception.ScreenShotError("no permission")

        grabber, _ = self._grabber(_fail)
        with self.assertRaises(CaptureError):
            grabber.capture_region(Region(0, 0, 30, 30), 1.0)


if __name__ == "__main__":
    unittest.main()
