"""Unit tests for the shared text helpers in layer_pipeline.utils.text."""

from layer_pipeline.utils.text import (
    content_fingerprint,
    count_functions,
    count_line_changes,
    extract_declared_names,
    layer_signature,
    line_similarity,
)


class TestCountLineChanges:
    def test_identical_is_zero(self):
        assert count_line_changes("a\nb", "a\nb") == 0

    def test_counts_changed_lines(self):
        assert count_line_changes("a\nb\nc", "a\nB\nC") == 2

    def test_counts_length_difference(self):
        # one added line, overlapping lines identical
        assert count_line_changes("a\nb", "a\nb\nc") == 1

    def test_length_difference_and_mismatch(self):
        assert count_line_changes("a", "x\ny\nz") == 3


class TestLineSimilarity:
    def test_identical(self):
        assert line_similarity("a\nb", "a\nb") == 1.0

    def test_completely_different(self):
        assert line_similarity("a\nb", "c\nd") == 0.0

    def test_partial(self):
        value = line_similarity("a\nb\nc\nd", "a\nb\nc\nx")
        assert 0.7 < value < 0.8


class TestFingerprint:
    def test_deterministic_and_hex(self):
        first = content_fingerprint("const x = 1")
        assert first == content_fingerprint("const x = 1")
        assert len(first) == 8
        int(first, 16)

    def test_empty_string(self):
        assert content_fingerprint("") == "00000000"

    def test_differs_for_different_content(self):
        assert content_fingerprint("a") != content_fingerprint("b")


class TestLayerSignature:
    def test_sorted_and_deduplicated(self):
        assert layer_signature([3, 1, 2, 3]) == "1,2,3"

    def test_empty(self):
        assert layer_signature([]) == ""


class TestDeclarations:
    def test_top_level_names(self):
        code = (
            "export default function App() {}\n"
            "export const value = 1;\n"
            "class Store {}\n"
            "async function load() {}\n"
            "  const nested = 2;\n"
        )
        assert extract_declared_names(code) == ["App", "value", "Store", "load"]

    def test_python_defs(self):
        assert extract_declared_names("def run():\n    pass\n") == ["run"]

    def test_count_functions(self):
        assert count_functions("function a() {}\nfunction b() {}\ndef c(): pass") == 3
