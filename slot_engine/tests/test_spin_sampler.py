import unittest

from slot_engine.exceptions import ConfigurationError
from slot_engine.error_codes import ErrorCodes
from slot_engine.utils.rng import RecordingRandomSource, ScriptedRandomSource, SeededRandomSource
from slot_engine.utils.spin_sampler import sample, sample_stops, window


class TestSpinSampler(unittest.TestCase):

    def setUp(self):
        self.strips = [("A", "B", "C", "D"), ("E", "F", "G"), ("H", "I")]

    def test_stops_drawn_in_reel_order(self):
        rng = ScriptedRandomSource([0.0, 0.5, 0.99])
        self.assertEqual(sample_stops(self.strips, rng), [0, 1, 1])
        self.assertEqual(rng.consumed, 3)

    def test_window_wraps_around_strip_end(self):
        grid = window(self.strips, [0, 1, 1], 3)
        self.assertEqual(grid.reels, [["A", "B", "C"], ["F", "G", "E"], ["I", "H", "I"]])

    def test_sample_matches_strip_positions_for_drawn_stops(self):
        recorder = RecordingRandomSource(SeededRandomSource(99))
        for _ in range(50):
            recorder.draws.clear()
            grid = sample(self.strips, 3, recorder)
            for reel, strip in enumerate(self.strips):
                stop = min(int(recorder.draws[reel] * len(strip)), len(strip) - 1)
                for row in range(3):
                    self.assertEqual(grid.cell(reel, row), strip[(stop + row) % len(strip)])

    def test_recorded_stops_reproduce_grid(self):
        stops = sample_stops(self.strips, SeededRandomSource(5))
        self.assertEqual(window(self.strips, stops, 2), window(self.strips, list(stops), 2))

    def test_non_positive_row_count_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            sample(self.strips, 0, ScriptedRandomSource([0.1, 0.1, 0.1]))
        self.assertEqual(ctx.exception.error_code, ErrorCodes.INVALID_GEOMETRY)

    def test_empty_strip_list_rejected(self):
        with self.assertRaises(ConfigurationError):
            sample([], 3, ScriptedRandomSource([0.1]))

    def test_empty_strip_rejected(self):
        with self.assertRaises(ConfigurationError):
            sample_stops([("A",), ()], ScriptedRandomSource([0.1, 0.1]))

    def test_stop_count_must_match_reels(self):
        with self.assertRaises(ConfigurationError):
            window(self.strips, [0, 0], 3)


if __name__ == '__main__':
    unittest.main()
