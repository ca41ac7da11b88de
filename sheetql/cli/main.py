from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import ConfigError, resolve_config
from ..db.loader import RelationalLoader
from ..errors import SheetIngestError
from ..excel.reader import check_payload_size, ensure_xlsx
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.analysis import SheetAnalysis
from ..models.config_models import IngestConfig
from ..services.analyzer import SheetAnalyzer
from ..services.orchestrator import analyze_and_load
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- load .env, then config (YAML + SHEETQL_* overrides)
- read the workbook, print the analysis JSON
- unless --analyze-only: load every sheet, optionally print the schema
  description and run each --query, then log the SUMMARY line

Exit codes: 0 all sheets loaded / 2 some sheets failed / 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

logger = logging.getLogger(__name__)


def _load_env_file(path: Path, override: bool = False) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="sheetql", description="Load an xlsx workbook into an in-process SQL store"
    )
    p.add_argument("workbook", type=Path, help="Path to the .xlsx workbook")
    p.add_argument("--config", type=Path, default=None, help="YAML config file")
    p.add_argument("--analyze-only", action="store_true", help="Print the analysis and exit")
    p.add_argument("--schema", action="store_true", help="Print the schema description after loading")
    p.add_argument(
        "--query", action="append", default=[], metavar="SQL", help="SQL to run after loading (repeatable)"
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _print_analysis(analysis: SheetAnalysis) -> None:
    print(json.dumps(analysis.to_dict(), ensure_ascii=False, indent=2))


async def _run(args: argparse.Namespace, cfg: IngestConfig, payload: bytes) -> int:
    if args.analyze_only:
        analysis = await SheetAnalyzer(cfg.analysis).analyze_async(payload)
        _print_analysis(analysis)
        return EXIT_SUCCESS_ALL

    async with RelationalLoader(cfg.loader) as loader:
        analysis, result = await analyze_and_load(payload, loader, cfg, source_name=args.workbook.name)
        _print_analysis(analysis)
        if args.schema:
            print(await loader.schema_with_samples())
        for query in args.query:
            print((await loader.execute(query)).to_json())

    log_summary(render_summary_line(result)[len("SUMMARY "):])
    if result.partial_failure:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    setup_logging()

    # None のときのみ sys.argv を読む (テストから main([...]) で呼ぶため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    try:
        cfg = resolve_config(args.config)
    except ConfigError as e:
        logger.error("config: %s", e)
        return EXIT_FATAL

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    workbook: Path = args.workbook
    try:
        ensure_xlsx(workbook.suffix)
        payload = workbook.read_bytes()
        check_payload_size(payload, cfg.max_file_size)
    except OSError as e:
        logger.error("cannot read %s: %s", workbook, e)
        return EXIT_FATAL
    except SheetIngestError as e:
        logger.error("%s: %s", e.error_type, e.message)
        return EXIT_FATAL

    try:
        return asyncio.run(_run(args, cfg, payload))
    except SheetIngestError as e:
        logger.error("%s: %s", e.error_type, e.message)
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
