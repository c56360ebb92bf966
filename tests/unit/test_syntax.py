"""Unit tests for the syntax checkers.

The delimiter checker only needs to tell "obviously broken" from "plausible";
these tests pin that boundary for common JSX/TypeScript shapes.
"""

import pytest

from layer_pipeline.utils.syntax import (
    DelimiterSyntaxChecker,
    PythonSyntaxChecker,
    get_syntax_checker,
)


@pytest.fixture
def checker():
    return DelimiterSyntaxChecker()


class TestDelimiterChecker:
    def test_simple_statement(self, checker):
        assert checker.check("const x = 1") is None

    def test_component(self, checker, sample_component):
        assert checker.check(sample_component) is None

    def test_unclosed_brace(self, checker):
        error = checker.check("function a() {\n  return 1;\n")
        assert error == "Unclosed '{' opened at line 1"

    def test_unexpected_closer(self, checker):
        assert checker.check("const x = 1)") == "Unexpected ')' at line 1"

    def test_mismatched_closer(self, checker):
        error = checker.check("call(a]\n")
        assert error.startswith("Mismatched ']' at line 1")

    def test_brackets_inside_strings_ignored(self, checker):
        assert checker.check("const s = '(((';\nconst t = \"}}\";") is None

    def test_brackets_inside_comments_ignored(self, checker):
        code = "// (\n/* { [ */\nconst x = 1;"
        assert checker.check(code) is None

    def test_unterminated_block_comment(self, checker):
        assert "block comment" in checker.check("/* open\nconst x = 1;")

    def test_template_literal_with_expression(self, checker):
        assert checker.check("const s = `a ${fn({ b: 1 })} c`;") is None

    def test_unterminated_template(self, checker):
        error = checker.check("const s = `abc")
        assert error == "Unterminated template literal starting at line 1"

    def test_jsx_apostrophe_is_prose(self, checker):
        code = "const el = (\n  <p>Don't stop (ever)</p>\n);"
        assert checker.check(code) is None

    def test_keyword_before_quote_opens_string(self, checker):
        assert checker.check("import x from '(';\nreturn ')'") is None

    def test_reports_line_number(self, checker):
        error = checker.check("a();\nb();\nc(;\n}")
        assert "line 4" in error


class TestPythonChecker:
    def test_valid(self):
        assert PythonSyntaxChecker().check("def f():\n    return 1\n") is None

    def test_invalid_reports_line(self):
        error = PythonSyntaxChecker().check("def f(:\n    pass\n")
        assert error is not None
        assert "(line 1)" in error


class TestFactory:
    @pytest.mark.parametrize("language", ["javascript", "typescript", "JSX", "tsx"])
    def test_delimiter_languages(self, language):
        assert isinstance(get_syntax_checker(language), DelimiterSyntaxChecker)

    def test_python(self):
        assert isinstance(get_syntax_checker("python"), PythonSyntaxChecker)

    def test_instances_reused(self):
        assert get_syntax_checker("javascript") is get_syntax_checker("javascript")

    def test_unknown_language(self):
        with pytest.raises(ValueError, match="지원하지 않는 언어"):
            get_syntax_checker("cobol")
