"""
Environment-driven settings for the slot engine tooling.

Values are read once at import, after ``load_dotenv()``, and malformed numbers
fail fast with a ConfigurationError instead of falling back to defaults.
"""
import os

from dotenv import load_dotenv

from slot_engine.exceptions import ConfigurationError

load_dotenv()

_TRUE_VALUES = ('true', '1', 't', 'yes')


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in _TRUE_VALUES


def _env_int(name: str, default):
    value = os.getenv(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(
            status_message=f"Environment variable {name} must be an integer",
            details={name: value}
        )


class Config:
    DEBUG = _env_bool('SLOT_ENGINE_DEBUG', False)
    LOG_LEVEL = os.getenv('SLOT_ENGINE_LOG_LEVEL', 'INFO').upper()

    # Monte Carlo defaults used by the CLI
    SIM_TRIALS = _env_int('SLOT_ENGINE_SIM_TRIALS', 100_000)
    SIM_WORKERS = _env_int('SLOT_ENGINE_SIM_WORKERS', os.cpu_count() or 1)
    SIM_SEED = _env_int('SLOT_ENGINE_SIM_SEED', None)
    SIM_BET = 1.0

    GRAPH_DIR = os.getenv('SLOT_ENGINE_GRAPH_DIR', 'slot_engine_graphs')
    CONFIG_DIR = os.getenv('SLOT_ENGINE_CONFIG_DIR', 'game_configs')


class TestingConfig(Config):
    TESTING = True
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    SIM_TRIALS = 2_000
    SIM_WORKERS = 1
    SIM_SEED = 1234
    CONFIG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'tests', 'test_data')
