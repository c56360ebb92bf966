"""Unit tests for pydantic models."""

import pytest
from pydantic import ValidationError

from layer_pipeline.models import (
    DocumentRole,
    ExecutionContext,
    Layer,
    LayerExecutionRecord,
    LayerStatus,
    PipelineOptions,
    PipelineResult,
    RollbackAction,
    TransformationSnapshot,
    ValidationOutcome,
)


def _make_record(**overrides) -> LayerExecutionRecord:
    """Helper to build a LayerExecutionRecord with sensible defaults."""
    defaults = dict(
        layer_id=1,
        layer_name="First",
        before_code="a",
        after_code="b",
        success=True,
        status=LayerStatus.ACCEPTED,
        change_count=1,
    )
    defaults.update(overrides)
    return LayerExecutionRecord(**defaults)


class TestLayer:
    def test_defaults(self):
        layer = Layer(id=1, name="Config")
        assert layer.prerequisites == frozenset()
        assert layer.structural is False
        assert layer.trigger_patterns == ()

    def test_id_must_be_positive(self):
        with pytest.raises(ValidationError):
            Layer(id=0, name="Zero")

    def test_frozen(self):
        layer = Layer(id=1, name="Config")
        with pytest.raises(ValidationError):
            layer.name = "Other"

    def test_prerequisites_from_list(self):
        layer = Layer(id=3, name="Third", prerequisites=[1, 2])
        assert layer.prerequisites == frozenset({1, 2})


class TestExecutionContext:
    def test_defaults(self):
        context = ExecutionContext()
        assert context.document_role == DocumentRole.UTILITY
        assert not context.has_feature("routing")

    def test_has_feature(self):
        context = ExecutionContext(features=frozenset({"routing"}))
        assert context.has_feature("routing")


class TestRollbackModels:
    def test_validation_outcome_hard_error(self):
        assert ValidationOutcome(should_revert=True, reason="x").is_hard_error
        assert not ValidationOutcome().is_hard_error

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            ValidationOutcome(confidence=1.5)

    def test_snapshot_ids_are_unique(self):
        first = TransformationSnapshot(layer_id=1, before_code="a", after_code="b", confidence=1.0)
        second = TransformationSnapshot(layer_id=1, before_code="a", after_code="b", confidence=1.0)
        assert first.id != second.id
        assert first.id.startswith("snapshot_")

    def test_action_values(self):
        assert RollbackAction.PARTIAL_ROLLBACK.value == "partial-rollback"
        assert RollbackAction("manual-review") == RollbackAction.MANUAL_REVIEW


class TestLayerExecutionRecord:
    def test_rolled_back_statuses(self):
        assert _make_record(status=LayerStatus.ROLLED_BACK, success=False).rolled_back
        assert _make_record(status=LayerStatus.FLAGGED_FOR_REVIEW, success=False).rolled_back
        assert _make_record(status=LayerStatus.PARTIALLY_ROLLED_BACK, success=False).rolled_back
        assert not _make_record(status=LayerStatus.PARTIALLY_ROLLED_BACK, success=True).rolled_back
        assert not _make_record().rolled_back


class TestPipelineOptions:
    def test_defaults(self):
        options = PipelineOptions()
        assert options.use_cache is True
        assert options.timeout_ms_per_layer is None
        assert options.skip_optimization is False
        assert options.strict_prerequisites is None

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            PipelineOptions(timeout_ms_per_layer=0)


class TestPipelineResult:
    def test_changed(self):
        assert PipelineResult(final_code="b", original_code="a").changed
        assert not PipelineResult(final_code="a", original_code="a").changed

    def test_get_layer_result(self):
        result = PipelineResult(
            final_code="b",
            layer_results=[_make_record(layer_id=1), _make_record(layer_id=2)],
        )
        assert result.get_layer_result(2).layer_id == 2
        assert result.get_layer_result(5) is None

    def test_summary(self):
        result = PipelineResult(
            final_code="c",
            original_code="a",
            layer_results=[
                _make_record(layer_id=1, improvements=["Added error handling"], change_count=3),
                _make_record(
                    layer_id=2,
                    success=False,
                    status=LayerStatus.TIMED_OUT,
                    error="Layer 2 timed out after 10ms",
                    change_count=0,
                ),
                _make_record(
                    layer_id=3,
                    success=False,
                    status=LayerStatus.ROLLED_BACK,
                    change_count=9,
                ),
            ],
            skipped_layers=[4],
            total_execution_time_ms=12.3456,
        )

        summary = result.summary()

        assert summary["total_changes"] == 3
        assert summary["executed_layers"] == [1]
        assert summary["failed_layers"] == [2]
        assert summary["rolled_back_layers"] == [3]
        assert summary["skipped_layers"] == [4]
        assert summary["improvements"] == ["Added error handling"]
        assert summary["execution_time_ms"] == 12.35
        assert summary["from_cache"] is False
