"""
Command line entry point: `flowlogic lint|preview|diff`.

Usage:
    flowlogic lint flow.json
    flowlogic preview flow.json --values answers.json --set guests=2
    flowlogic diff draft.json published.json

Exit codes:
    0 - OK
    1 - Lint issues found
    2 - Input could not be read
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from flowlogic.config import get_settings
from flowlogic.diff import compare_flow_versions, diff_summary
from flowlogic.engine.steps import build_form_steps
from flowlogic.engine.visibility import evaluate_field_logic
from flowlogic.errors import FlowLoadError
from flowlogic.lint import has_errors, lint_flow
from flowlogic.logs import configure_logging, get_logger
from flowlogic.schemas.flow import Flow

logger = get_logger("cli")


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise FlowLoadError(f"File not found: {path}") from e
    except json.JSONDecodeError as e:
        raise FlowLoadError(f"Invalid JSON in {path}: {e}") from e


def load_flow(path: Path) -> Flow:
    raw = _read_json(path)
    # API responses wrap the document as {"flow": ...} or {"data": ...}.
    if isinstance(raw, dict):
        for key in ("flow", "data"):
            inner = raw.get(key)
            if isinstance(inner, dict) and "nodes" in inner:
                raw = inner
                break
    if not isinstance(raw, dict):
        raise FlowLoadError(f"{path} does not contain a flow object")
    try:
        return Flow.model_validate(raw)
    except ValidationError as e:
        raise FlowLoadError(f"{path} is not a valid flow: {e.error_count()} error(s)\n{e}") from e


def _parse_assignment(text: str) -> tuple[str, Any]:
    key, sep, raw = text.partition("=")
    if not sep or not key.strip():
        raise FlowLoadError(f"Expected key=value, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key.strip(), value


def _load_values(values_path: Optional[str], assignments: List[str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if values_path:
        raw = _read_json(Path(values_path))
        if not isinstance(raw, dict):
            raise FlowLoadError(f"{values_path} must contain a JSON object")
        values.update(raw)
    for item in assignments or []:
        k, v = _parse_assignment(item)
        values[k] = v
    return values


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2, default=str))


def cmd_lint(args: argparse.Namespace) -> int:
    flow = load_flow(Path(args.flow))
    issues = lint_flow(flow)
    if not issues:
        print(f"OK: {args.flow} ({len(flow.step_nodes())} steps)")
        return 0
    for issue in issues:
        print(f"{issue.severity.upper()}: [{issue.kind}] {issue.node_id}: {issue.message}")
    if has_errors(issues):
        print(f"FAIL: {len(issues)} issue(s) found in {args.flow}", file=sys.stderr)
        return 1
    return 0


def build_preview(flow: Flow, values: Dict[str, Any]) -> Dict[str, Any]:
    settings = get_settings()
    steps = build_form_steps(flow, values, settings=settings)
    out_steps = []
    for step in steps:
        fields = []
        for q in step.node.data.questions:
            logic = evaluate_field_logic(q.id, flow, values, settings=settings)
            fields.append(
                {
                    "id": q.id,
                    "type": q.type,
                    "label": q.label,
                    "show": logic.show,
                    "required": q.required or logic.required,
                    "value": values.get(q.id),
                }
            )
        out_steps.append(
            {
                "id": step.id,
                "sourceId": step.source_id,
                "loopIndex": step.loop_index,
                "label": step.label,
                "visible": step.is_visible,
                "fields": fields,
            }
        )
    return {
        "flowId": flow.id,
        "visibleSteps": [s.id for s in steps if s.is_visible],
        "steps": out_steps,
    }


def cmd_preview(args: argparse.Namespace) -> int:
    flow = load_flow(Path(args.flow))
    values = _load_values(args.values, args.set)
    _print_json(build_preview(flow, values))
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    draft = load_flow(Path(args.draft))
    published = load_flow(Path(args.published))
    result = compare_flow_versions(draft, published)
    for d in result.differences:
        print(f"{d.type:<8} {d.section:<11} {d.path}: {d.description}")
    print(diff_summary(result))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="flowlogic", description="Inspect multi-step form flows.")
    sub = ap.add_subparsers(dest="command", required=True)

    p_lint = sub.add_parser("lint", help="Report dangling references and loop misconfiguration.")
    p_lint.add_argument("flow", help="Path to a flow JSON document.")
    p_lint.set_defaults(func=cmd_lint)

    p_preview = sub.add_parser("preview", help="Show steps, loops and field states for given answers.")
    p_preview.add_argument("flow", help="Path to a flow JSON document.")
    p_preview.add_argument("--values", default=None, help="JSON file with the answers map.")
    p_preview.add_argument("--set", action="append", default=[], metavar="KEY=VALUE", help="Override one answer (JSON or text).")
    p_preview.set_defaults(func=cmd_preview)

    p_diff = sub.add_parser("diff", help="Compare a draft flow against a published one.")
    p_diff.add_argument("draft")
    p_diff.add_argument("published")
    p_diff.set_defaults(func=cmd_diff)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return int(args.func(args))
    except FlowLoadError as e:
        logger.error("load failed: %s", e)
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
