from slot_engine.error_codes import ErrorCodes

class EngineException(Exception):
    def __init__(self, error_code, status_message, details=None):
        super().__init__(status_message)
        self.error_code = error_code
        self.status_message = status_message
        self.details = details if details is not None else {}

    def to_dict(self):
        return {
            "error_code": self.error_code,
            "status_message": self.status_message,
            "details": self.details,
        }

class ConfigurationError(EngineException):
    def __init__(self, status_message="Invalid game configuration", details=None, error_code=ErrorCodes.CONFIGURATION_ERROR):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            details=details
        )

class InvalidWeightTable(ConfigurationError):
    def __init__(self, status_message="Invalid weight table", details=None):
        super().__init__(
            status_message=status_message,
            details=details,
            error_code=ErrorCodes.INVALID_WEIGHT_TABLE
        )

class RandomSourceExhausted(EngineException):
    def __init__(self, status_message="Scripted random source exhausted", details=None):
        super().__init__(
            error_code=ErrorCodes.RANDOM_SOURCE_EXHAUSTED,
            status_message=status_message,
            details=details
        )

class FeatureStateError(EngineException):
    def __init__(self, status_message="Invalid feature state transition", details=None):
        super().__init__(
            error_code=ErrorCodes.FEATURE_STATE_ERROR,
            status_message=status_message,
            details=details
        )

class SimulationError(EngineException):
    def __init__(self, status_message="Simulation failed", details=None):
        super().__init__(
            error_code=ErrorCodes.SIMULATION_ERROR,
            status_message=status_message,
            details=details
        )
