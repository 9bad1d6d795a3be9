import logging

from pythonjsonlogger import jsonlogger

from slot_engine.config import Config
from slot_engine.schemas import load_game_config
from slot_engine.services.spin_service import SpinEngine
from slot_engine.utils.reel_strips import ReelStripCache

PACKAGE_LOGGER = 'slot_engine'


def configure_logging(debug=None, level=None, config_class=Config):
    """
    JSON lines on stderr in normal mode, plain basicConfig at DEBUG in debug
    mode. Safe to call more than once.
    """
    debug = config_class.DEBUG if debug is None else debug
    logger = logging.getLogger(PACKAGE_LOGGER)

    if not debug:
        handler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(name)s %(module)s %(funcName)s %(lineno)d %(message)s'
        )
        handler.setFormatter(formatter)
        if logger.hasHandlers():
            logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(level or config_class.LOG_LEVEL)
        logger.propagate = False
    else:
        if not logging.getLogger().handlers:
            logging.basicConfig(level=logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.propagate = True
    return logger


def create_engine(game_config_or_path, config_class=Config, strip_cache=None):
    """Builds a SpinEngine from a GameConfig or a path to a JSON game configuration."""
    if isinstance(game_config_or_path, str):
        game_config = load_game_config(game_config_or_path)
    else:
        game_config = game_config_or_path
    engine = SpinEngine(game_config, strip_cache=strip_cache if strip_cache is not None else ReelStripCache())
    logging.getLogger(__name__).debug(
        f"Created engine for '{game_config.name}' (debug={config_class.DEBUG})"
    )
    return engine
