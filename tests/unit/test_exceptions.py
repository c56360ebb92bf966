"""Unit tests for custom exception classes.

Tests the exception hierarchy, default error codes, message formatting,
and details propagation for all custom exceptions in the layer pipeline.
"""

import pytest

from layer_pipeline.exceptions import (
    PipelineError,
    UnknownLayerError,
    LayerRegistrationError,
    LayerTimeoutError,
    LayerExecutionError,
    ValidationFailure,
    SnapshotNotFoundError,
    CacheError,
)


class TestPipelineError:
    def test_base_error_attributes(self):
        err = PipelineError("Something failed", error_code="ERR_TEST", details={"key": "value"})
        assert err.message == "Something failed"
        assert err.error_code == "ERR_TEST"
        assert err.details == {"key": "value"}
        assert str(err) == "Something failed"

    def test_base_error_defaults(self):
        err = PipelineError("Minimal error")
        assert err.error_code == "ERR_UNKNOWN"
        assert err.details is None


class TestLayerErrors:
    """Layer errors carry the layer id and a formatted message."""

    def test_unknown_layer(self):
        err = UnknownLayerError(9)
        assert err.layer_id == 9
        assert err.message == "Unknown layer 9"
        assert err.error_code == "ERR_LAYER_001"

    def test_registration_error_code(self):
        err = LayerRegistrationError("duplicate", details={"layer_id": 1})
        assert err.error_code == "ERR_LAYER_002"
        assert err.details["layer_id"] == 1

    def test_timeout_message(self):
        err = LayerTimeoutError(4, 250)
        assert err.layer_id == 4
        assert err.timeout_ms == 250
        assert err.message == "Layer 4 timed out after 250ms"
        assert err.error_code == "ERR_TIMEOUT_001"

    def test_execution_error_wraps_message(self):
        err = LayerExecutionError(2, "boom")
        assert err.message == "Layer 2 failed: boom"
        assert err.error_code == "ERR_EXEC_001"


class TestOtherErrors:
    def test_validation_failure_code(self):
        assert ValidationFailure("broken").error_code == "ERR_VALID_001"

    def test_snapshot_not_found(self):
        err = SnapshotNotFoundError("snapshot_abc")
        assert err.snapshot_id == "snapshot_abc"
        assert "snapshot_abc" in err.message
        assert err.error_code == "ERR_SNAPSHOT_001"

    def test_cache_error_code(self):
        assert CacheError("corrupt").error_code == "ERR_CACHE_001"


class TestExceptionHierarchy:
    """All custom exceptions must be catchable as PipelineError."""

    @pytest.mark.parametrize(
        "exc_cls,args",
        [
            (UnknownLayerError, (1,)),
            (LayerRegistrationError, ("msg",)),
            (LayerTimeoutError, (1, 100)),
            (LayerExecutionError, (1, "msg")),
            (ValidationFailure, ("msg",)),
            (SnapshotNotFoundError, ("id",)),
            (CacheError, ("msg",)),
        ],
    )
    def test_catchable_as_base(self, exc_cls, args):
        err = exc_cls(*args)
        assert isinstance(err, PipelineError)

        with pytest.raises(PipelineError):
            raise err
