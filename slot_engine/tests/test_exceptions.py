import pytest
from slot_engine.exceptions import (
    EngineException,
    ConfigurationError,
    InvalidWeightTable,
    RandomSourceExhausted,
    FeatureStateError,
    SimulationError
)
from slot_engine.error_codes import ErrorCodes

def test_engine_exception_instantiation():
    details = {"field": "value"}
    exc = EngineException(error_code="TEST_001", status_message="Test message", details=details)

    assert exc.error_code == "TEST_001"
    assert exc.status_message == "Test message"
    assert exc.details == details
    assert str(exc) == "Test message"

def test_engine_exception_defaults():
    exc = EngineException(error_code="TEST_002", status_message="Default test")
    assert exc.details == {}

def test_engine_exception_to_dict():
    exc = EngineException(error_code="TEST_003", status_message="Serialized", details={"a": 1})
    assert exc.to_dict() == {"error_code": "TEST_003", "status_message": "Serialized", "details": {"a": 1}}

def test_configuration_error():
    details = {"paylines": ["Line-pay games need at least one payline."]}
    exc = ConfigurationError(status_message="Bad config", details=details)
    assert exc.error_code == ErrorCodes.CONFIGURATION_ERROR
    assert exc.status_message == "Bad config"
    assert exc.details == details
    with pytest.raises(ConfigurationError):
        raise exc

def test_configuration_error_custom_code():
    exc = ConfigurationError(status_message="Bad grid", error_code=ErrorCodes.INVALID_GEOMETRY)
    assert exc.error_code == ErrorCodes.INVALID_GEOMETRY

def test_invalid_weight_table_is_configuration_error():
    exc = InvalidWeightTable(status_message="Reel 2 has no symbol with a positive weight", details={"reel": 2})
    assert exc.error_code == ErrorCodes.INVALID_WEIGHT_TABLE
    assert isinstance(exc, ConfigurationError)
    with pytest.raises(ConfigurationError):
        raise exc

def test_random_source_exhausted():
    exc = RandomSourceExhausted(details={"draws_consumed": 4})
    assert exc.error_code == ErrorCodes.RANDOM_SOURCE_EXHAUSTED
    assert exc.status_message == "Scripted random source exhausted"
    assert exc.details["draws_consumed"] == 4

def test_feature_state_error():
    exc = FeatureStateError(status_message="Already active")
    assert exc.error_code == ErrorCodes.FEATURE_STATE_ERROR
    assert not isinstance(exc, ConfigurationError)
    with pytest.raises(FeatureStateError):
        raise exc

def test_simulation_error():
    exc = SimulationError()
    assert exc.error_code == ErrorCodes.SIMULATION_ERROR
    assert exc.status_message == "Simulation failed"
