"""CLI entry point for ruledex."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import cast

from ruledex import __version__
from ruledex.rule_engine.config import CONFIG_FILENAME, RulesConfig, load_rules_config
from ruledex.rule_engine.index import RuleRegistry, RulesIndex, build_registry, iter_rule_sources
from ruledex.rule_engine.keywords import extract_keywords, keyword_vocabulary
from ruledex.rule_engine.models import FileReport, RequestContext, Severity
from ruledex.rule_engine.parser import ParseError, parse_rule
from ruledex.rule_engine.resolver import Resolver, UnresolvableLoadPlan
from ruledex.rule_engine.validator import validate_rule
from ruledex.server.runner import run_server


def _load_config(args: argparse.Namespace) -> RulesConfig:
    config = load_rules_config(Path.cwd() / CONFIG_FILENAME)
    if getattr(args, "schema_version", None):
        config.schema_version = args.schema_version
    if getattr(args, "foundation", None):
        config.foundation = args.foundation
    if getattr(args, "strict", False):
        config.fail_on_high = True
    return config


def _load_registry(args: argparse.Namespace, config: RulesConfig) -> RuleRegistry:
    rules_dir = cast(Path | None, args.rules_dir) or Path.cwd() / config.rules_dir
    if not rules_dir.is_dir():
        print(f"Error: rules directory not found: {rules_dir}", file=sys.stderr)
        sys.exit(1)
    return RulesIndex(Path.cwd(), config=config, rules_dir=rules_dir).load()


def _validate_file(path: Path, config: RulesConfig) -> FileReport:
    rule_id = path.name
    try:
        doc = parse_rule(path.read_text(encoding="utf-8"), rule_id, path=str(path))
    except ParseError as e:
        return FileReport(rule_id=rule_id, path=str(path), parse_error=e.message)
    findings = validate_rule(
        doc, schema_version=config.schema_version, foundation=config.foundation
    )
    return FileReport(rule_id=rule_id, path=str(path), findings=findings)


def _print_report(reports: list[FileReport], extra: list[str]) -> None:
    for report in reports:
        status = "PASS" if report.passed else "FAIL"
        print(f"[{status}] {report.rule_id}")
        if report.parse_error:
            print(f"    Critical  parse-error: {report.parse_error}")
        for f in report.findings:
            print(f"    {f.severity:<9} {f.check}: {f.message}")
    for line in extra:
        print(line)
    critical = sum(r.count(Severity.CRITICAL) + (1 if r.parse_error else 0) for r in reports)
    high = sum(r.count(Severity.HIGH) for r in reports)
    failed = sum(1 for r in reports if not r.passed)
    print(f"\n{len(reports)} files, {failed} failed, {critical} critical, {high} high")


def _cmd_validate(args: argparse.Namespace) -> None:
    config = _load_config(args)
    target = cast(Path, args.path)
    if not target.exists():
        print(f"Error: path not found: {target}", file=sys.stderr)
        sys.exit(1)

    extra: list[str] = []
    if target.is_dir():
        registry = build_registry(iter_rule_sources(target, config.exclude), config)
        reports = registry.reports
        extra.extend(f"Dangling: {d.rule_id} -> {d.target}" for d in registry.dangling)
        extra.extend(f"Cycle: {c}" for c in registry.cycles)
    else:
        reports = [_validate_file(target, config)]

    if args.json:
        print(
            json.dumps(
                {
                    "passed": all(r.passed for r in reports),
                    "files": [r.model_dump(mode="json") for r in reports],
                },
                indent=2,
            )
        )
    else:
        _print_report(reports, extra)

    failed = any(not r.passed for r in reports)
    if config.fail_on_high:
        failed = failed or any(r.count(Severity.HIGH) for r in reports)
    if failed:
        sys.exit(1)


def _cmd_resolve(args: argparse.Namespace) -> None:
    config = _load_config(args)
    registry = _load_registry(args, config)

    keywords = set(cast(list[str], args.keywords))
    if args.prompt:
        keywords |= extract_keywords(args.prompt, keyword_vocabulary(registry.trigger_index))
    context = RequestContext.from_paths(cast(list[str], args.paths), keywords=keywords)
    context.extensions.update(cast(list[str], args.extensions))
    context.filenames.update(cast(list[str], args.filenames))
    context.directories.update(cast(list[str], args.directories))

    try:
        plan = Resolver(registry).resolve(context)
    except UnresolvableLoadPlan as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(plan.model_dump(), indent=2))
    else:
        print(plan.render(foundation=registry.foundation))


def _cmd_index(args: argparse.Namespace) -> None:
    config = _load_config(args)
    registry = _load_registry(args, config)

    if args.json:
        data = {
            "rules": [
                {
                    "id": d.id,
                    "triggers": [str(t) for t in d.triggers],
                    "depends": d.depends,
                }
                for d in registry.documents
            ],
            "triggers": registry.trigger_index.as_dict(),
            "snapshot_hash": registry.snapshot_hash,
        }
        print(json.dumps(data, indent=2))
        return

    print(f"Rules: {len(registry)}, triggers: {len(registry.trigger_index)}")
    for doc in registry.documents:
        triggers = ", ".join(str(t) for t in doc.triggers) or "-"
        depends = ", ".join(doc.depends) or "-"
        print(f"  {doc.id}")
        print(f"    triggers: {triggers}")
        print(f"    depends:  {depends}")
    for rule_id, error in registry.parse_errors.items():
        print(f"  {rule_id} (unreadable: {error})")


def _cmd_serve(_args: argparse.Namespace) -> None:
    run_server()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="ruledex",
        description="Index, validate and resolve markdown rule documents",
    )
    _ = parser.add_argument("-V", "--version", action="version", version=f"ruledex {__version__}")
    _ = parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # validate subcommand
    validate_p = subparsers.add_parser("validate", help="Validate a rule file or directory")
    _ = validate_p.add_argument("path", type=Path, help="Rule file or rules directory")
    _ = validate_p.add_argument("--json", action="store_true", help="Print JSON report")
    _ = validate_p.add_argument(
        "--strict", action="store_true", help="Also fail on High severity findings"
    )
    _ = validate_p.add_argument(
        "--schema-version", default=None, dest="schema_version", help="Active schema version"
    )
    _ = validate_p.add_argument("--foundation", default=None, help="Foundation rule id")

    # resolve subcommand
    resolve_p = subparsers.add_parser("resolve", help="Resolve the load plan for a context")
    _ = resolve_p.add_argument("--rules-dir", type=Path, default=None, dest="rules_dir")
    _ = resolve_p.add_argument("--ext", action="append", default=[], dest="extensions")
    _ = resolve_p.add_argument("--file", action="append", default=[], dest="filenames")
    _ = resolve_p.add_argument("--dir", action="append", default=[], dest="directories")
    _ = resolve_p.add_argument("--keyword", action="append", default=[], dest="keywords")
    _ = resolve_p.add_argument(
        "--path", action="append", default=[], dest="paths", help="Touched file path"
    )
    _ = resolve_p.add_argument("--prompt", default=None, help="Request text to scan for keywords")
    _ = resolve_p.add_argument("--foundation", default=None, help="Foundation rule id")
    _ = resolve_p.add_argument("--json", action="store_true", help="Print JSON plan")

    # index subcommand
    index_p = subparsers.add_parser("index", help="Show rules with triggers and dependencies")
    _ = index_p.add_argument("--rules-dir", type=Path, default=None, dest="rules_dir")
    _ = index_p.add_argument("--json", action="store_true", help="Print JSON index")

    # serve subcommand
    _ = subparsers.add_parser("serve", help="Start the HTTP API server")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    dispatch = {
        "validate": _cmd_validate,
        "resolve": _cmd_resolve,
        "index": _cmd_index,
        "serve": _cmd_serve,
    }
    command = cast(str | None, args.command)
    handler = dispatch.get(command) if command is not None else None
    if handler:
        handler(args)
    else:
        parser.print_help()
        sys.exit(1)
