# -*- coding: utf-8 -*-
from __future__ import annotations

import threading
import unittest

import numpy as np

from scroll.alignment import AlignmentEngine
from scroll.frame import Frame
from scroll.stitch_accumulator import StitchAccumulator, composite_below, crop_bottom


def _frame(value: int, width: int = 40, height: int = 100, scale: float = 1.0) -> Frame:
    pixels = np.full((int(height * scale), int(width * scale), 3), value, dtype=np.uint8)
    return Frame(pixels, (width, height), scale)


def _gradient(width: int = 40, height: int = 100) -> Frame:
    rows = np.arange(height, dtype=np.uint8)[:, None, None]
    return Frame(np.repeat(np.repeat(rows, width, axis=1), 3, axis=2), (width, height))


class _ScriptedEngine:
    """Возвращает заранее заданное смещение для каждого нового кадра."""

    def __init__(self, offsets=None):
        self.offsets = {}
        self.calls = []
        for frame, offset in (offsets or {}).items():
            self.offsets[id(frame)] = offset

    def script(self, frame: Frame, offset):
        self.offsets[id(frame)] = offset
        return frame

    def estimate_offset(self, current, previous):
        self.calls.append((current, previous))
        value = self.offsets.get(id(current), 0)
        if isinstance(value, Exception):
            raise value
        return value


class StitchAccumulatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = _ScriptedEngine()
        self.acc = StitchAccumulator(self.engine)

    def tearDown(self) -> None:
        self.acc.shutdown()

    def _finish(self, session: int = 1) -> Frame:
        return self.acc.finalize(session).result(timeout=5)

    def test_zero_and_missing_offsets_keep_first_frame(self) -> None:
        first = _gradient()
        self.acc.start(first, 1)
        for offset in (0, None, 0, None):
            self.acc.add_frame(self.engine.script(_frame(200), offset), 1)

        canvas = self._finish()
        self.assertEqual(canvas.size, first.size)
        self.assertTrue(np.array_equal(canvas.pixels, first.pixels))

    def test_downward_offsets_accumulate_in_order(self) -> None:
        self.acc.start(_frame(10), 1)
        for offset in (50, 30, 20):
            self.acc.add_frame(self.engine.script(_frame(offset), offset), 1)

        canvas = self._finish()
        self.assertEqual(canvas.height, 200)
        self.assertEqual(canvas.pixel_height, 200)
        self.assertTrue((canvas.pixels[:100] == 10).all())
        self.assertTrue((canvas.pixels[100:150] == 50).all())
        self.assertTrue((canvas.pixels[150:180] == 30).all())
        self.assertTrue((canvas.pixels[180:200] == 20).all())

    def test_upward_offset_trims_bottom_keeping_top(self) -> None:
        first = _gradient()
        self.acc.start(first, 1)
        self.acc.add_frame(self.engine.script(_frame(255), -50), 1)

        canvas = self._finish()
        self.assertEqual(canvas.height, 50)
        self.assertTrue(np.array_equal(canvas.pixels, first.pixels[:50]))

    def test_upward_offset_larger_than_canvas_is_rejected(self) -> None:
        first = _gradient()
        self.acc.start(first, 1)
        rejected = self.engine.script(_frame(255), -100)
        self.acc.add_frame(rejected, 1)
        follow_up = self.engine.script(_frame(7), 0)
        self.acc.add_frame(follow_up, 1)

        canvas = self._finish()
        self.assertEqual(canvas.height, 100)
        self.assertTrue(np.array_equal(canvas.pixels, first.pixels))
        # Базовый кадр всё равно сдвигается на отклонённый кадр.
        self.assertIs(self.engine.calls[-1][1], rejected)

    def test_failed_detection_advances_baseline(self) -> None:
        first = _frame(10)
        self.acc.start(first, 1)
        failed = self.engine.script(_frame(20), None)
        self.acc.add_frame(failed, 1)
        nxt = self.engine.script(_frame(30), 10)
        self.acc.add_frame(nxt, 1)

        canvas = self._finish()
        self.assertIs(self.engine.calls[1][1], failed)
        self.assertEqual(canvas.height, 110)

    def test_finalize_is_barrier_between_frames(self) -> None:
        gate = threading.Event()
        inner = self.engine.estimate_offset

        def _slow(current, previous):
            gate.wait(timeout=5)
            return inner(current, previous)

        self.engine.estimate_offset = _slow
        self.acc.start(_frame(10), 1)
        self.acc.add_frame(self.engine.script(_frame(20), 40), 1)
        result = self.acc.finalize(1)
        self.acc.add_frame(self.engine.script(_frame(30), 25), 1)
        self.assertFalse(result.done())
        gate.set()

        canvas = result.result(timeout=5)
        self.assertEqual(canvas.height, 140)
        self.assertFalse((canvas.pixels == 30).any())

    def test_scroll_down_then_up_scenario(self) -> None:
        self.acc.start(_frame(10, width=800, height=600), 1)
        self.acc.add_frame(self.engine.script(_frame(20, width=800, height=600), 100), 1)
        self.acc.add_frame(self.engine.script(_frame(30, width=800, height=600), -40), 1)

        canvas = self._finish()
        self.assertEqual(canvas.size, (800.0, 660.0))
        self.assertEqual(canvas.pixels.shape, (660, 800, 3))

    def test_first_frame_without_start_becomes_canvas(self) -> None:
        first = _frame(42)
        self.acc.add_frame(first, 1)
        canvas = self._finish()
        self.assertIs(canvas, first)
        self.assertEqual(self.engine.calls, [])

    def test_discard_drops_state_and_late_frames(self) -> None:
        self.acc.start(_frame(10), 1)
        self.acc.add_frame(self.engine.script(_frame(20), 30), 1)
        self.acc.discard(1)
        self.acc.add_frame(self.engine.script(_frame(30), 30), 1)

        self.assertIsNone(self.acc.finalize(1).result(timeout=5))

    def test_late_frame_does_not_leak_into_next_session(self) -> None:
        self.acc.start(_frame(10), 1)
        self.acc.finalize(1)
        self.acc.start(_frame(50), 2)
        self.acc.add_frame(self.engine.script(_frame(99), 30), 1)

        canvas = self._finish(2)
        self.assertEqual(canvas.height, 100)
        self.assertTrue((canvas.pixels == 50).all())

    def test_finalize_without_state_returns_none(self) -> None:
        self.assertIsNone(self._finish())

    def test_engine_error_is_treated_as_missing_offset(self) -> None:
        self.acc.start(_frame(10), 1)
        self.acc.add_frame(self.engine.script(_frame(20), RuntimeError("boom")), 1)
        self.acc.add_frame(self.engine.script(_frame(30), 10), 1)

        canvas = self._finish()
        self.assertEqual(canvas.height, 110)


class FractionalRegionTests(unittest.TestCase):
    """Логическая высота кадра не кратна пикселям (дробная область, масштаб 125%/150%)."""

    def setUp(self) -> None:
        rng = np.random.default_rng(11)
        self.page = rng.integers(0, 256, size=(700, 200, 3), dtype=np.uint8)
        self.acc = StitchAccumulator(AlignmentEngine(top_margin=0, bottom_margin=0))

    def tearDown(self) -> None:
        self.acc.shutdown()

    def _stitch(self, frames) -> Frame:
        self.acc.start(frames[0], 1)
        for frame in frames[1:]:
            self.acc.add_frame(frame, 1)
        return self.acc.finalize(1).result(timeout=5)

    def test_fractional_logical_height_keeps_every_row(self) -> None:
        previous = Frame(self.page[100:434], (200, 333.5))
        current = Frame(self.page[110:444], (200, 333.5))

        canvas = self._stitch([previous, current])
        self.assertEqual(canvas.pixel_height, 344)
        self.assertTrue(np.array_equal(canvas.pixels, self.page[100:444]))

    def test_fractional_scale_repeated_growth_does_not_drift(self) -> None:
        frames = [Frame.from_array(self.page[top : top + 301], scale=1.5) for top in (0, 10, 20, 30, 40)]

        canvas = self._stitch(frames)
        self.assertEqual(canvas.pixel_height, 341)
        self.assertTrue(np.array_equal(canvas.pixels, self.page[:341]))
        self.assertAlmostEqual(canvas.height * 1.5, canvas.pixel_height, places=6)


class CompositeHelpersTests(unittest.TestCase):
    def test_composite_converts_points_to_pixels(self) -> None:
        canvas = _frame(10, height=100, scale=2.0)
        frame = _frame(20, height=100, scale=2.0)

        result = composite_below(canvas, frame, 25)
        self.assertEqual(result.size, (40.0, 125.0))
        self.assertEqual(result.pixel_height, 250)
        self.assertTrue((result.pixels[:200] == 10).all())
        self.assertTrue((result.pixels[200:] == 20).all())

    def test_canvas_covers_overlap_of_new_frame(self) -> None:
        canvas = _gradient()
        frame = _frame(255)
        result = composite_below(canvas, frame, 10)
        self.assertTrue(np.array_equal(result.pixels[:100], canvas.pixels))

    def test_crop_bottom_outside_range_returns_canvas(self) -> None:
        canvas = _frame(10)
        self.assertIs(crop_bottom(canvas, 0), canvas)
        self.assertIs(crop_bottom(canvas, 100), canvas)
        self.assertEqual(crop_bottom(canvas, 30).height, 70)

    def test_frames_are_read_only(self) -> None:
        result = composite_below(_frame(10), _frame(20), 10)
        with self.assertRaises(ValueError):
            result.pixels[0, 0, 0] = 1


if __name__ == "__main__":
    unittest.main()
