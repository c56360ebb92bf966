"""입력 문서 분류 서비스.

문서 역할, 실행 환경, 기능 표면을 휴리스틱으로 판별합니다.
최선 노력(best-effort) 분류기이며, 결과는 변경이 없을 것이 확실한 레이어를
가지치기하는 데에만 사용됩니다.
"""

import re
from pathlib import PurePosixPath
from typing import Optional

from layer_pipeline.models import DocumentRole, Environment, ExecutionContext


IMPORT_PATTERN = re.compile(
    r"""(?:import\s[^'"]*?from\s*|import\s*|require\(\s*)['"]([^'"]+)['"]"""
)

# 기능 체크리스트: (기능 이름, 패턴 목록)
FEATURE_CHECKLIST: list[tuple[str, tuple[str, ...]]] = [
    ("state-management", ("useState", "useReducer", "createStore", "useSelector")),
    ("side-effects", ("useEffect", "useLayoutEffect")),
    ("browser-storage", ("localStorage", "sessionStorage", "indexedDB")),
    ("api-calls", ("fetch(", "axios", "XMLHttpRequest")),
    ("routing", ("useRouter", "usePathname", "useNavigate", "next/navigation", "next/router")),
    ("forms", ("<form", "<input", "onSubmit", "useForm")),
    ("event-handling", ("onClick", "onChange", "addEventListener")),
    ("styling", ("className", "styled.", "tailwind", "style={{")),
    ("async-operations", ("async ", "await ", ".then(")),
]

PATTERN_CHECKLIST: list[tuple[str, tuple[str, ...]]] = [
    ("error-handling", ("try {", "catch (", ".catch(")),
    ("memoization", ("useMemo", "useCallback", "React.memo")),
    ("accessibility", ("aria-", "role=")),
    ("testing-ready", ("data-testid",)),
    ("has-todos", ("// TODO", "// FIXME")),
]

FRAMEWORK_MARKERS = (
    "next/", "useRouter", "usePathname", "'use client'", '"use client"',
    "'use server'", '"use server"', "getServerSideProps", "getStaticProps",
)
LIBRARY_MARKERS = ("from 'react'", 'from "react"', "useState", "useEffect", "React.")

# app/ 디렉터리에서 라우트로 취급하는 파일 이름
APP_ROUTE_FILES = frozenset({"page", "layout", "template", "loading", "error", "not-found", "route", "default"})

_LIST_RENDERING = re.compile(r"\.map\s*\([^)]*\)?\s*=>\s*[(\s]*<")


class ContextAnalyzer:
    """
    입력 코드의 실행 컨텍스트를 판별하는 클래스입니다.
    """

    def analyze(self, code: str, file_path: Optional[str] = None) -> ExecutionContext:
        """
        문서를 분류합니다.

        Args:
            code: 소스 코드
            file_path: 파일 경로 힌트 (선택)

        Returns:
            ExecutionContext
        """
        return ExecutionContext(
            document_role=self.detect_role(code, file_path),
            environment=self.detect_environment(code),
            features=frozenset(self.detect_features(code)),
            dependencies=frozenset(IMPORT_PATTERN.findall(code)),
            patterns=frozenset(
                name for name, markers in PATTERN_CHECKLIST
                if any(marker in code for marker in markers)
            ),
            file_path=file_path,
        )

    def detect_role(self, code: str, file_path: Optional[str] = None) -> DocumentRole:
        """
        문서 역할 판별.

        경로 규칙을 먼저 확인하고, 경로가 없거나 맞는 규칙이 없으면 내용 휴리스틱을 사용합니다.
        """
        if file_path:
            role = self._role_from_path(file_path)
            if role is not None:
                return role

        # 내용 기반 판별
        if re.search(r"\b(?:describe|it|test)\s*\(", code) and re.search(r"\bexpect\s*\(", code):
            return DocumentRole.TEST
        if re.search(r"export\s+(?:default\s+)?function\s+use[A-Z]", code):
            return DocumentRole.HOOK
        if re.search(r"export\s+default\s+function", code) and "<" in code and "return" in code:
            return DocumentRole.COMPONENT
        if "useState" in code and re.search(r"function\s+use[A-Z]", code):
            return DocumentRole.HOOK

        return DocumentRole.UTILITY

    @staticmethod
    def _role_from_path(file_path: str) -> Optional[DocumentRole]:
        path = PurePosixPath(file_path.replace("\\", "/"))
        segments = {part.lower() for part in path.parts[:-1]}
        name = path.name.lower()

        if ".test." in name or ".spec." in name or "__tests__" in segments:
            return DocumentRole.TEST
        if ".config." in name or name.startswith("tsconfig") or name == "package.json":
            return DocumentRole.CONFIG
        if "pages" in segments:
            return DocumentRole.PAGE
        if "app" in segments and path.stem.lower() in APP_ROUTE_FILES:
            return DocumentRole.PAGE
        if "hooks" in segments or re.match(r"use[A-Z]", path.stem):
            return DocumentRole.HOOK
        if "components" in segments:
            return DocumentRole.COMPONENT
        if "lib" in segments or "utils" in segments:
            return DocumentRole.UTILITY
        return None

    def detect_environment(self, code: str) -> Environment:
        """프레임워크 표식으로 실행 환경 판별."""
        if any(marker in code for marker in FRAMEWORK_MARKERS):
            return Environment.FRAMEWORK_MANAGED
        if any(marker in code for marker in LIBRARY_MARKERS):
            return Environment.FRAMEWORK_AGNOSTIC
        return Environment.PLAIN

    def detect_features(self, code: str) -> list[str]:
        """고정 체크리스트로 기능 표면 판별 (부분 문자열 존재 여부)."""
        features = [
            name for name, markers in FEATURE_CHECKLIST
            if any(marker in code for marker in markers)
        ]
        if _LIST_RENDERING.search(code):
            features.append("list-rendering")
        return features
