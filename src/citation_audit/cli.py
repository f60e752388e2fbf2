"""Command line interface for auditing citations."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from .app import CitationAuditApp
from .config import Settings
from .exceptions import AuditInputError
from .models import CitationStyle
from .pattern_observer import PatternObserver
from .report import render_flags, render_report, report_to_dict
from .style_rules import StyleRuleRegistry
from .verification import ExternalVerificationService

EXIT_INPUT_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        help="Logging level (defaults to CITATION_AUDIT_LOG_LEVEL or WARNING)",
    )
    parser = argparse.ArgumentParser(
        prog="citation-audit", description="Audit a document's citations and references"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    audit = subparsers.add_parser(
        "audit", parents=[common], help="Run a full audit on an extracted request"
    )
    audit.add_argument("request", type=Path, help="Path to an audit request JSON file")
    audit.add_argument(
        "--json-output",
        type=Path,
        help="Write the structured audit report to a JSON file",
    )
    audit.add_argument(
        "--offline",
        action="store_true",
        help="Skip Crossref/arXiv/PubMed and completion calls; citations stay PENDING",
    )

    observe = subparsers.add_parser(
        "observe", parents=[common], help="Flag style violations in plain text"
    )
    observe.add_argument("text_file", type=Path, help="Path to a UTF-8 text file")
    observe.add_argument(
        "--style",
        default=None,
        type=_style_arg,
        help="APA, MLA, IEEE or Chicago (defaults to CITATION_AUDIT_DEFAULT_STYLE)",
    )
    return parser


def _style_arg(value: str) -> str:
    style = CitationStyle.parse(value)
    if style is None:
        choices = ", ".join(s.value for s in CitationStyle)
        raise argparse.ArgumentTypeError(f"unknown style {value!r} (choose from {choices})")
    return style.value


def _read_request(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise AuditInputError(f"Cannot read {path}", str(exc)) from exc
    except ValueError as exc:
        raise AuditInputError(f"{path} is not valid JSON", str(exc)) from exc


def _run_audit(args: argparse.Namespace, settings: Settings) -> int:
    if args.offline:
        verifier = ExternalVerificationService(settings=settings)
    else:
        verifier = ExternalVerificationService.from_settings(settings)
    app = CitationAuditApp(verifier=verifier, settings=settings)

    report = app.audit_payload(_read_request(args.request))
    print(render_report(report))

    if args.json_output:
        args.json_output.write_text(json.dumps(report_to_dict(report), indent=2))
    return 0


def _run_observe(args: argparse.Namespace, settings: Settings) -> int:
    try:
        text = args.text_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise AuditInputError(f"Cannot read {args.text_file}", str(exc)) from exc
    observer = PatternObserver(StyleRuleRegistry(default_style=settings.default_style))
    style = args.style or settings.default_style
    flags = observer.observe(text, style) + observer.detect_mixed_styles(text)
    print(render_flags(flags))
    return 0


def main(argv: List[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "audit":
            return _run_audit(args, settings)
        return _run_observe(args, settings)
    except AuditInputError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    raise SystemExit(main())
