import unittest

from slot_engine.exceptions import FeatureStateError
from slot_engine.models import FreeSpinsFeature, Grid
from slot_engine.services.feature_state import FeatureMode, FeatureStateMachine, retrigger_award


def grid_with_scatters(count):
    """5x3 grid holding ``count`` scatters, row by row."""
    cells = ["S"] * count + ["A"] * (15 - count)
    return Grid.from_rows([cells[0:5], cells[5:10], cells[10:15]])


class TestFeatureStateMachine(unittest.TestCase):

    def setUp(self):
        self.machine = FeatureStateMachine(scatter_symbol="S")

    def test_starts_idle(self):
        self.assertEqual(self.machine.mode, FeatureMode.IDLE)
        self.assertFalse(self.machine.is_active)

    def test_activate_creates_state(self):
        state = self.machine.activate(FreeSpinsFeature(scatter_count=4, spins_awarded=15, multiplier=2))
        self.assertEqual(self.machine.mode, FeatureMode.FREE_SPINS_ACTIVE)
        self.assertEqual((state.spins_remaining, state.total_spins_awarded, state.win_multiplier), (15, 15, 2))
        self.assertEqual(state.retrigger_count, 0)

    def test_activate_while_active_raises(self):
        self.machine.activate(FreeSpinsFeature(3, 10, 1))
        with self.assertRaises(FeatureStateError):
            self.machine.activate(FreeSpinsFeature(3, 10, 1))

    def test_advance_while_idle_raises(self):
        with self.assertRaises(FeatureStateError):
            self.machine.advance(grid_with_scatters(0), 1.0)

    def test_session_ends_exactly_once(self):
        self.machine.activate(FreeSpinsFeature(3, 10, 1))
        results = [self.machine.advance(grid_with_scatters(0), 0.0) for _ in range(10)]
        self.assertEqual([r.spins_remaining for r in results], list(range(9, -1, -1)))
        self.assertEqual([r.continue_session for r in results], [True] * 9 + [False])
        self.assertEqual(self.machine.mode, FeatureMode.IDLE)
        self.assertIsNone(self.machine.state)

    def test_retrigger_sequence(self):
        # 10 spins; scatter counts 3, 4, 5 on consecutive spins add 5, 10, 15 after each consumed spin
        self.machine.activate(FreeSpinsFeature(3, 10, 1))
        remaining = [self.machine.advance(grid_with_scatters(n), 0.0).spins_remaining for n in (3, 4, 5)]
        self.assertEqual(remaining, [14, 23, 37])
        self.assertEqual(self.machine.state.retrigger_count, 3)
        self.assertEqual(self.machine.state.total_spins_awarded, 40)

    def test_retrigger_award_table(self):
        self.assertEqual([retrigger_award(n) for n in (3, 4, 5, 6, 9)], [5, 10, 15, 5, 5])

    def test_retrigger_on_last_spin_keeps_session(self):
        self.machine.activate(FreeSpinsFeature(3, 1, 1))
        result = self.machine.advance(grid_with_scatters(3), 0.0)
        self.assertTrue(result.retriggered)
        self.assertTrue(result.continue_session)
        self.assertEqual(result.spins_remaining, 5)
        self.assertTrue(self.machine.is_active)

    def test_reported_win_uses_session_multiplier(self):
        self.machine.activate(FreeSpinsFeature(4, 15, 2))
        first = self.machine.advance(grid_with_scatters(0), 5.0)
        second = self.machine.advance(grid_with_scatters(1), 2.5)
        self.assertEqual(first.reported_win, 10.0)
        self.assertEqual(second.reported_win, 5.0)
        self.assertEqual(second.session_total, 15.0)
        self.assertEqual(self.machine.state.accumulated_win, 15.0)

    def test_last_spin_reports_win_before_teardown(self):
        self.machine.activate(FreeSpinsFeature(3, 1, 2))
        result = self.machine.advance(grid_with_scatters(2), 4.0)
        self.assertEqual(result.reported_win, 8.0)
        self.assertEqual(result.session_total, 8.0)
        self.assertFalse(result.continue_session)
        self.assertEqual(self.machine.mode, FeatureMode.IDLE)

    def test_state_survives_persistence(self):
        self.machine.activate(FreeSpinsFeature(5, 25, 2))
        self.machine.advance(grid_with_scatters(3), 1.0)
        restored = FeatureStateMachine.from_dict(self.machine.to_dict())
        self.assertEqual(restored.state, self.machine.state)
        self.assertEqual(restored.mode, FeatureMode.FREE_SPINS_ACTIVE)
        self.assertEqual(restored.scatter_symbol, "S")

    def test_idle_machine_persists_without_state(self):
        data = self.machine.to_dict()
        self.assertEqual(data["mode"], "idle")
        self.assertIsNone(FeatureStateMachine.from_dict(data).state)

    def test_persisted_state_without_spins_rejected(self):
        data = {"scatter_symbol": "S", "state": {
            "spins_remaining": 0, "total_spins_awarded": 10, "win_multiplier": 1,
            "retrigger_count": 0, "accumulated_win": 0.0,
        }}
        with self.assertRaises(FeatureStateError):
            FeatureStateMachine.from_dict(data)


if __name__ == '__main__':
    unittest.main()
