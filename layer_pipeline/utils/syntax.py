"""구문 검사기 모듈입니다.

범용 파서를 구현하지 않습니다. 변환 결과가 "명백히 깨졌는지"만 판단합니다.

검사기 종류:
- DelimiterSyntaxChecker: JavaScript/TypeScript(JSX 포함)용.
  문자열/주석/템플릿 리터럴을 건너뛰면서 괄호 짝을 검사합니다.
- PythonSyntaxChecker: 표준 라이브러리 ast 문법으로 파싱합니다.
"""

import ast
from abc import ABC, abstractmethod
from typing import Dict, Optional, Type


_PAIRS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")", "]", "}"}

# 템플릿 리터럴 내부 표현식(${ ... })을 나타내는 스택 표식
_TEMPLATE_EXPR = "${"
_TEMPLATE = "`"

_STRING_KEYWORDS = frozenset({
    "return", "from", "import", "case", "typeof", "in", "of", "else",
    "yield", "await", "export", "default", "throw", "new", "void", "delete",
})


class BaseSyntaxChecker(ABC):
    """
    모든 구문 검사기의 부모 클래스입니다.
    """

    @property
    @abstractmethod
    def language(self) -> str:
        """검사 대상 언어 이름"""
        pass

    @abstractmethod
    def check(self, code: str) -> Optional[str]:
        """
        코드를 검사합니다.

        Returns:
            구문 오류 메시지. 문제가 없으면 None.
        """
        pass


class DelimiterSyntaxChecker(BaseSyntaxChecker):
    """
    JavaScript/TypeScript 계열 코드의 괄호/리터럴 균형 검사기.

    처리 규칙:
    - '...', "..." 문자열: 이스케이프 처리, 줄바꿈에서 종료 (JSX 텍스트 관용)
    - 앞 글자가 영숫자인 따옴표(예: don't)는 문자열 시작으로 보지 않음
    - `...` 템플릿 리터럴과 ${...} 표현식 중첩 지원
    - //, /* */ 주석 무시

    정규식 리터럴은 구분하지 않습니다.
    """

    language = "javascript"

    def check(self, code: str) -> Optional[str]:
        stack: list[tuple[str, int]] = []  # (여는 기호, 라인 번호)
        line = 1
        i = 0
        n = len(code)

        while i < n:
            ch = code[i]
            top = stack[-1][0] if stack else None

            # 템플릿 리터럴 본문
            if top == _TEMPLATE:
                if ch == "\\":
                    i += 2
                    continue
                if ch == "`":
                    stack.pop()
                elif ch == "$" and code[i + 1:i + 2] == "{":
                    stack.append((_TEMPLATE_EXPR, line))
                    i += 2
                    continue
                elif ch == "\n":
                    line += 1
                i += 1
                continue

            if ch == "\n":
                line += 1
                i += 1
                continue

            # 주석
            if ch == "/" and code[i + 1:i + 2] == "/":
                end = code.find("\n", i)
                i = n if end == -1 else end
                continue
            if ch == "/" and code[i + 1:i + 2] == "*":
                end = code.find("*/", i + 2)
                if end == -1:
                    return f"Unterminated block comment starting at line {line}"
                line += code.count("\n", i, end)
                i = end + 2
                continue

            # 문자열
            if ch in ("'", '"'):
                if self._opens_string(code, i):
                    i = self._skip_string(code, i)
                else:
                    i += 1
                continue

            if ch == "`":
                stack.append((_TEMPLATE, line))
            elif ch in _PAIRS:
                stack.append((ch, line))
            elif ch in _CLOSERS:
                if not stack:
                    return f"Unexpected '{ch}' at line {line}"
                opener, opened_at = stack.pop()
                expected = "}" if opener == _TEMPLATE_EXPR else _PAIRS[opener]
                if ch != expected:
                    return (
                        f"Mismatched '{ch}' at line {line}: "
                        f"'{opener}' opened at line {opened_at} is not closed"
                    )
            i += 1

        if stack:
            opener, opened_at = stack[-1]
            if opener == _TEMPLATE:
                return f"Unterminated template literal starting at line {opened_at}"
            return f"Unclosed '{opener}' opened at line {opened_at}"

        return None

    @staticmethod
    def _opens_string(code: str, index: int) -> bool:
        """따옴표 앞 글자가 영숫자면 산문(JSX 텍스트)의 아포스트로피로 판단."""
        j = index - 1
        while j >= 0 and code[j] in " \t":
            j -= 1
        if j < 0 or code[j] == "\n":
            return True
        prev = code[j]
        if not (prev.isalnum() or prev == "_"):
            return True
        # 키워드 뒤의 따옴표는 문자열 (예: from 'react', return "x")
        start = j
        while start > 0 and (code[start - 1].isalnum() or code[start - 1] == "_"):
            start -= 1
        return code[start:j + 1] in _STRING_KEYWORDS

    @staticmethod
    def _skip_string(code: str, index: int) -> int:
        """닫는 따옴표 다음 위치를 반환합니다. 줄바꿈을 만나면 그 위치에서 멈춥니다."""
        quote = code[index]
        j = index + 1
        n = len(code)
        while j < n:
            c = code[j]
            if c == "\\":
                j += 2
                continue
            if c == quote:
                return j + 1
            if c == "\n":
                return j
            j += 1
        return n


class PythonSyntaxChecker(BaseSyntaxChecker):
    """Python 소스 검사기 (ast.parse)."""

    language = "python"

    def check(self, code: str) -> Optional[str]:
        try:
            ast.parse(code)
        except SyntaxError as e:
            return f"{e.msg} (line {e.lineno})"
        except ValueError as e:
            # 널 바이트 등
            return str(e)
        return None


_CHECKER_CLASSES: Dict[str, Type[BaseSyntaxChecker]] = {
    "javascript": DelimiterSyntaxChecker,
    "typescript": DelimiterSyntaxChecker,
    "jsx": DelimiterSyntaxChecker,
    "tsx": DelimiterSyntaxChecker,
    "python": PythonSyntaxChecker,
}

_checkers: Dict[str, BaseSyntaxChecker] = {}


def get_syntax_checker(language: str) -> BaseSyntaxChecker:
    """
    언어에 맞는 구문 검사기 인스턴스를 반환합니다.
    이미 생성된 인스턴스가 있으면 재사용합니다.
    """
    key = language.lower()
    if key not in _checkers:
        checker_class = _CHECKER_CLASSES.get(key)
        if not checker_class:
            raise ValueError(f"지원하지 않는 언어입니다: {language}")
        _checkers[key] = checker_class()

    return _checkers[key]
