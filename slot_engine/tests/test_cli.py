import os
import tempfile
import unittest

from click.testing import CliRunner

from slot_engine.cli import cli, resolve_config_path
from slot_engine.config import TestingConfig

TEST_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'test_data')
LINES_GAME = os.path.join(TEST_DATA_DIR, 'lines_game.json')
CLUSTER_GAME = os.path.join(TEST_DATA_DIR, 'cluster_game.json')


class TestCli(unittest.TestCase):

    def setUp(self):
        self.runner = CliRunner()

    def invoke(self, *args):
        return self.runner.invoke(cli, list(args), obj={'config': TestingConfig})

    def test_validate_valid_config(self):
        result = self.invoke('validate', LINES_GAME)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("'Gem Rush' is valid", result.output)

    def test_validate_invalid_config(self):
        result = self.invoke('validate', os.path.join(TEST_DATA_DIR, 'invalid_game.json'))
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error [SE_1000]", result.output)

    def test_config_name_resolved_against_config_dir(self):
        self.assertEqual(resolve_config_path('lines_game.json', TestingConfig), LINES_GAME)
        result = self.invoke('validate', 'lines_game.json')
        self.assertEqual(result.exit_code, 0, result.output)

    def test_estimate(self):
        result = self.invoke('estimate', CLUSTER_GAME)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Theoretical RTP: 90.00%", result.output)
        self.assertIn("target 94.00%", result.output)

    def test_strips(self):
        result = self.invoke('strips', LINES_GAME)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Reel 0: length 40", result.output)
        self.assertIn("Reel 3: length 42", result.output)

    def test_spin_prints_outcomes(self):
        result = self.invoke('spin', LINES_GAME, '--seed', '4', '--count', '2')
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output.count('"stops"'), 2)

    def test_simulate_summary(self):
        result = self.invoke('simulate', LINES_GAME, '--trials', '300', '--workers', '1', '--seed', '8')
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Overall RTP:", result.output)
        self.assertIn("Trials: 300/300", result.output)

    def test_simulate_json_and_graphs(self):
        with tempfile.TemporaryDirectory() as tmp:
            result = self.invoke('simulate', CLUSTER_GAME, '--trials', '200', '--workers', '1',
                                 '--as-json', '--graphs', '--graph-dir', tmp)
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn('"trials_completed": 200', result.output)
            self.assertTrue(any(name.endswith('_rtp_convergence.png') for name in os.listdir(tmp)))

    def test_simulate_missing_config(self):
        result = self.invoke('simulate', 'does_not_exist.json', '--trials', '10')
        self.assertEqual(result.exit_code, 1)


if __name__ == '__main__':
    unittest.main()
