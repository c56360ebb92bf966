"""유틸리티 모듈."""

from .text import (
    count_line_changes,
    line_similarity,
    content_fingerprint,
    layer_signature,
    extract_declared_names,
    count_functions,
)
from .syntax import (
    BaseSyntaxChecker,
    DelimiterSyntaxChecker,
    PythonSyntaxChecker,
    get_syntax_checker,
)
from .checks import (
    ChangeCheck,
    DEFAULT_IMPROVEMENT_CHECKS,
    DEFAULT_RISK_CHECKS,
    DEFAULT_RISK_WEIGHTS,
    run_checks,
    risk_score,
)

__all__ = [
    "count_line_changes",
    "line_similarity",
    "content_fingerprint",
    "layer_signature",
    "extract_declared_names",
    "count_functions",
    "BaseSyntaxChecker",
    "DelimiterSyntaxChecker",
    "PythonSyntaxChecker",
    "get_syntax_checker",
    "ChangeCheck",
    "DEFAULT_IMPROVEMENT_CHECKS",
    "DEFAULT_RISK_CHECKS",
    "DEFAULT_RISK_WEIGHTS",
    "run_checks",
    "risk_score",
]
