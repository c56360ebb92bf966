"""PerformanceOptimizer unit tests."""

import pytest

from layer_pipeline.exceptions import UnknownLayerError
from layer_pipeline.models import ExecutionContext, LayerExecutionRecord, LayerStatus
from layer_pipeline.services import PerformanceOptimizer


@pytest.fixture
def optimizer(registry, settings):
    return PerformanceOptimizer(registry, settings=settings)


def _make_record(**overrides) -> LayerExecutionRecord:
    defaults = dict(
        layer_id=4,
        before_code="a",
        after_code="b",
        execution_time_ms=10.0,
        success=True,
        status=LayerStatus.ACCEPTED,
    )
    defaults.update(overrides)
    return LayerExecutionRecord(**defaults)


class TestShouldSkipLayer:
    def test_skip_when_no_trigger_matches(self, optimizer):
        assert optimizer.should_skip_layer("const x = 1;", 4) is True

    def test_run_when_trigger_matches(self, optimizer):
        assert optimizer.should_skip_layer("localStorage.getItem('a')", 4) is False

    def test_relevant_context_feature_prevents_skip(self, optimizer):
        context = ExecutionContext(features=frozenset({"browser-storage"}))
        assert optimizer.should_skip_layer("const x = 1;", 4, context) is False

    def test_unrelated_context_feature_does_not_prevent_skip(self, optimizer):
        context = ExecutionContext(features=frozenset({"styling"}))
        assert optimizer.should_skip_layer("const x = 1;", 4, context) is True

    def test_layer_without_triggers_never_skipped(self, plain_registry, settings):
        optimizer = PerformanceOptimizer(plain_registry, settings=settings)
        assert optimizer.should_skip_layer("", 1) is False

    def test_unknown_layer(self, optimizer):
        with pytest.raises(UnknownLayerError):
            optimizer.should_skip_layer("x", 99)


class TestFilterLayers:
    def test_partitions_layers(self, optimizer):
        code = "var count = 1;\nlocalStorage.setItem('count', count);"

        selected, skipped = optimizer.filter_layers(code, [1, 2, 4])

        assert selected == [2, 4]
        assert skipped == [1]
        assert optimizer.get_stats().skipped_layers == 1


class TestCacheFacade:
    def test_store_then_lookup(self, optimizer):
        optimizer.store("const x = 1;", [1, 2], "const x = 2;", successful_layer_count=2)

        entry = optimizer.lookup("const x = 1;", [2, 1])

        assert entry is not None
        assert entry.result_code == "const x = 2;"
        assert optimizer.lookup("const x = 1;", [1]) is None

    def test_stats(self, optimizer):
        optimizer.store("a", [1], "b")
        optimizer.lookup("a", [1])
        optimizer.lookup("a", [2])

        stats = optimizer.get_stats()

        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(0.5)
        assert stats.cache_entries == 1


class TestProfiles:
    def test_running_averages(self, optimizer):
        optimizer.record_layer_execution(_make_record(execution_time_ms=10.0, success=True))
        profile = optimizer.record_layer_execution(
            _make_record(execution_time_ms=30.0, success=False, status=LayerStatus.FAILED)
        )

        assert profile.execution_count == 2
        assert profile.average_execution_time_ms == pytest.approx(20.0)
        assert profile.success_rate == pytest.approx(0.5)

    def test_stats_snapshot_is_a_copy(self, optimizer):
        optimizer.record_layer_execution(_make_record())
        stats = optimizer.get_stats()
        stats.profiles[4].execution_count = 99
        assert optimizer.get_profile(4).execution_count == 1

    def test_clear(self, optimizer):
        optimizer.store("a", [1], "b")
        optimizer.record_layer_execution(_make_record())
        optimizer.clear()
        assert optimizer.get_profile(4) is None
        assert optimizer.get_stats().cache_entries == 0
