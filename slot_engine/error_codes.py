class ErrorCodes:
    """String codes attached to every EngineException raised by the slot engine."""
    CONFIGURATION_ERROR = "SE_1000"
    INVALID_WEIGHT_TABLE = "SE_1001"
    INVALID_RT_CONFIG = "SE_1002"
    INVALID_GEOMETRY = "SE_1003"
    RANDOM_SOURCE_EXHAUSTED = "SE_2000"
    FEATURE_STATE_ERROR = "SE_3000"
    SIMULATION_ERROR = "SE_4000"
