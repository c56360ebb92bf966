"""Unit tests for ContextAnalyzer.

Classification is heuristic; these tests pin the path rules and the
obvious content signals rather than every marker in the checklists.
"""

import pytest

from layer_pipeline.models import DocumentRole, Environment
from layer_pipeline.services import ContextAnalyzer


@pytest.fixture
def analyzer():
    return ContextAnalyzer()


class TestDocumentRole:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("src/components/Button.test.tsx", DocumentRole.TEST),
            ("src/__tests__/button.tsx", DocumentRole.TEST),
            ("next.config.js", DocumentRole.CONFIG),
            ("tsconfig.json", DocumentRole.CONFIG),
            ("src/app/dashboard/page.tsx", DocumentRole.PAGE),
            ("pages/index.tsx", DocumentRole.PAGE),
            ("app/layout.tsx", DocumentRole.PAGE),
            ("app/components/Button.tsx", DocumentRole.COMPONENT),
            ("src/app/lib/api.ts", DocumentRole.UTILITY),
            ("app/hooks/useCart.ts", DocumentRole.HOOK),
            ("src/hooks/data.ts", DocumentRole.HOOK),
            ("src/useToggle.ts", DocumentRole.HOOK),
            ("src/components/Button.tsx", DocumentRole.COMPONENT),
            ("src/lib/format.ts", DocumentRole.UTILITY),
            ("C:\\repo\\src\\components\\Card.tsx", DocumentRole.COMPONENT),
        ],
    )
    def test_path_rules(self, analyzer, path, expected):
        assert analyzer.detect_role("", path) == expected

    def test_content_test_file(self, analyzer):
        code = "describe('x', () => { it('works', () => { expect(1).toBe(1); }); });"
        assert analyzer.detect_role(code) == DocumentRole.TEST

    def test_content_hook(self, analyzer):
        code = "export function useCounter() { return 1; }"
        assert analyzer.detect_role(code) == DocumentRole.HOOK

    def test_content_component(self, analyzer, sample_component):
        assert analyzer.detect_role(sample_component) == DocumentRole.COMPONENT

    def test_fallback_utility(self, analyzer):
        assert analyzer.detect_role("const x = 1") == DocumentRole.UTILITY

    def test_unmatched_path_uses_content(self, analyzer):
        code = "export function useThing() {}"
        assert analyzer.detect_role(code, "src/misc/thing.ts") == DocumentRole.HOOK


class TestEnvironment:
    def test_framework_managed(self, analyzer, sample_component):
        assert analyzer.detect_environment(sample_component) == Environment.FRAMEWORK_MANAGED

    def test_framework_agnostic(self, analyzer):
        code = "import React from 'react';\nconst [a, b] = useState(0);"
        assert analyzer.detect_environment(code) == Environment.FRAMEWORK_AGNOSTIC

    def test_plain(self, analyzer):
        assert analyzer.detect_environment("const x = 1") == Environment.PLAIN


class TestAnalyze:
    def test_features_and_dependencies(self, analyzer, sample_component):
        context = analyzer.analyze(sample_component, "src/components/TodoList.tsx")

        assert context.document_role == DocumentRole.COMPONENT
        assert {"state-management", "event-handling", "list-rendering"} <= context.features
        assert "react" in context.dependencies
        assert context.file_path == "src/components/TodoList.tsx"

    def test_browser_storage(self, analyzer):
        context = analyzer.analyze("const v = localStorage.getItem('k');")
        assert context.has_feature("browser-storage")

    def test_patterns(self, analyzer):
        code = "try {\n  run();\n} catch (e) {}\nconst f = useCallback(() => 1, []);"
        context = analyzer.analyze(code)
        assert {"error-handling", "memoization"} <= context.patterns

    def test_require_dependency(self, analyzer):
        context = analyzer.analyze("const fs = require('fs');")
        assert context.dependencies == frozenset({"fs"})

    def test_empty_input(self, analyzer):
        context = analyzer.analyze("")
        assert context.features == frozenset()
        assert context.environment == Environment.PLAIN
