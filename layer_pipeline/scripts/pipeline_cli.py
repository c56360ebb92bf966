#!/usr/bin/env python3
"""Layer pipeline command line tool.

Usage:
    python -m layer_pipeline.scripts.pipeline_cli resolve 3 5
    python -m layer_pipeline.scripts.pipeline_cli analyze src/components/Button.tsx
    python -m layer_pipeline.scripts.pipeline_cli run src/app/page.tsx --layers 1 2 3 --plugin my_layers

플러그인 모듈은 register(registry) 함수를 제공해야 하며,
이 함수에서 registry.bind(layer_id, transform)으로 변환 로직을 연결합니다.
"""

import argparse
import asyncio
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from layer_pipeline.exceptions import PipelineError
from layer_pipeline.layers import LayerRegistry, create_default_registry
from layer_pipeline.models import PipelineOptions
from layer_pipeline.services import ContextAnalyzer, PipelineExecutor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="레이어 파이프라인 실행 및 진단 도구"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="상세 로그 출력"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser("resolve", help="레이어 의존성 해결 결과 출력")
    resolve_parser.add_argument("layers", type=int, nargs="*", help="요청 레이어 ID")

    analyze_parser = subparsers.add_parser("analyze", help="파일의 실행 컨텍스트 출력")
    analyze_parser.add_argument("file", type=str, help="분석할 소스 파일")

    run_parser = subparsers.add_parser("run", help="파이프라인 실행")
    run_parser.add_argument("file", type=str, help="변환할 소스 파일")
    run_parser.add_argument("--layers", type=int, nargs="*", default=[], help="요청 레이어 ID")
    run_parser.add_argument(
        "--plugin",
        type=str,
        action="append",
        default=[],
        help="register(registry)를 제공하는 transform 플러그인 모듈"
    )
    run_parser.add_argument("--timeout-ms", type=int, default=None, help="레이어당 시간 제한")
    run_parser.add_argument("--no-cache", action="store_true", help="캐시 사용 안 함")
    run_parser.add_argument("--skip-optimization", action="store_true", help="레이어 건너뛰기 비활성화")
    run_parser.add_argument("--strict", action="store_true", help="선행 레이어 실패 시 의존 레이어 건너뛰기")
    run_parser.add_argument("--output", type=str, default=None, help="최종 코드를 저장할 경로")

    return parser


def load_plugins(registry: LayerRegistry, modules: list[str]) -> None:
    """플러그인 모듈의 register(registry)를 호출합니다."""
    for module_name in modules:
        module = importlib.import_module(module_name)
        register = getattr(module, "register", None)
        if register is None:
            raise PipelineError(
                f"플러그인에 register(registry) 함수가 없습니다: {module_name}",
                error_code="ERR_PLUGIN_001",
            )
        register(registry)
        logger.info(f"[CLI] 플러그인 로드: {module_name}")


def _print_json(data: dict) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


async def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    registry = create_default_registry()

    if args.command == "resolve":
        executor = PipelineExecutor(registry=registry)
        try:
            resolution = executor.resolve_dependencies(args.layers)
        finally:
            executor.shutdown()
        _print_json(resolution.model_dump())
        return 1 if resolution.unknown_layers else 0

    path = Path(args.file)
    if not path.exists():
        print(f"파일을 찾을 수 없습니다: {path}", file=sys.stderr)
        return 1
    code = path.read_text(encoding="utf-8")

    if args.command == "analyze":
        context = ContextAnalyzer().analyze(code, str(path))
        _print_json(context.model_dump(mode="json"))
        return 0

    try:
        load_plugins(registry, args.plugin)
    except (ImportError, PipelineError) as e:
        print(f"플러그인 로드 실패: {e}", file=sys.stderr)
        return 1

    options = PipelineOptions(
        use_cache=not args.no_cache,
        timeout_ms_per_layer=args.timeout_ms,
        skip_optimization=args.skip_optimization,
        strict_prerequisites=True if args.strict else None,
    )

    executor = PipelineExecutor(registry=registry)
    try:
        result = await executor.run(code, args.layers, options, file_path=str(path))
    finally:
        executor.shutdown()

    if args.output:
        Path(args.output).write_text(result.final_code, encoding="utf-8")
        logger.info(f"[CLI] 결과 저장: {args.output}")

    _print_json({
        "summary": result.summary(),
        "warnings": result.warnings,
        "layers": [
            {
                "layer_id": record.layer_id,
                "status": record.status.value,
                "success": record.success,
                "reason": record.reason,
                "error": record.error,
            }
            for record in result.layer_results
        ],
    })

    # 종료 코드: 오류가 있으면 1
    return 1 if any(record.error for record in result.layer_results) else 0


def run():
    """CLI 진입점."""
    exit_code = asyncio.run(main())
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
