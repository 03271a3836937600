from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from stagewise.core.docs.consistency import check_document_file
from stagewise.core.errors import StagewiseError
from stagewise.core.lineage.graph import ModelGraph
from stagewise.core.lint.engine import lint_manifest
from stagewise.core.lint.models import LintReport
from stagewise.core.manifest.loader import dump_manifest, load_manifest
from stagewise.core.planner import plan_manifest
from stagewise.core.sqlgen import render_manifest_sql
from stagewise.core.stages.catalog import list_stages


def _print_report(report: LintReport, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2, sort_keys=True))
        return
    for f in report.findings:
        where = f" [{f.model}]" if f.model else ""
        print(f"{f.level.upper():5} {f.code}{where}: {f.message}")
    summary = report.to_dict()["summary"]
    print(f"{summary['errors']} error(s), {summary['warnings']} warning(s), {summary['info']} info")


def _parse_entity(values: List[str]) -> Dict[str, List[str]]:
    """customer=odoo,hubspot -> {"customer": ["odoo", "hubspot"]}"""
    out: Dict[str, List[str]] = {}
    for v in values:
        entity, sep, sources = v.partition("=")
        if not sep or not entity.strip():
            raise argparse.ArgumentTypeError(f"Expected ENTITY=SOURCE[,SOURCE...], got {v!r}")
        out[entity.strip()] = [s.strip() for s in sources.split(",") if s.strip()]
    return out


def cmd_stages(args) -> int:
    for s in list_stages():
        print(f"{s.order}  {s.name.value:12} {s.pattern:22} {s.transformation}")
    return 0


def cmd_lint(args) -> int:
    report = lint_manifest(load_manifest(args.manifest))
    _print_report(report, args.json)
    return 1 if report.is_blocking else 0


def cmd_order(args) -> int:
    graph = ModelGraph.from_manifest(load_manifest(args.manifest))
    for name in graph.topological_order():
        print(name)
    return 0


def cmd_render(args) -> int:
    manifest = load_manifest(args.manifest)
    report = lint_manifest(manifest)
    if report.is_blocking and not args.force:
        _print_report(report, False)
        print("Refusing to render a manifest with convention errors (use --force).", file=sys.stderr)
        return 1

    out_dir = Path(args.out)
    files = render_manifest_sql(manifest)
    for rel, sql in files.items():
        target = out_dir / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(sql, encoding="utf-8")
    print(f"Wrote {len(files)} model(s) to {out_dir}")
    return 0


def cmd_plan(args) -> int:
    manifest = plan_manifest(
        args.project,
        _parse_entity(args.entity),
        with_metrics=not args.no_metrics,
        warehouse_schema=args.schema,
    )
    text = dump_manifest(manifest)
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        print(f"Wrote manifest for {len(manifest.models)} model(s) to {args.out}")
    else:
        print(text, end="")
    return 0


def cmd_docs(args) -> int:
    report = check_document_file(args.document)
    _print_report(report, args.json)
    return 1 if report.is_blocking else 0


def cmd_serve(args) -> int:
    import uvicorn

    from stagewise.api.main import app

    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stagewise", description="Layered warehouse convention tooling")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("stages", help="List the stage catalog")
    p.set_defaults(func=cmd_stages)

    p = sub.add_parser("lint", help="Check a manifest against the convention")
    p.add_argument("manifest")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_lint)

    p = sub.add_parser("order", help="Print models in build order")
    p.add_argument("manifest")
    p.set_defaults(func=cmd_order)

    p = sub.add_parser("render", help="Write SQL scaffolding for every model")
    p.add_argument("manifest")
    p.add_argument("--out", default="build", help="Output directory (default build)")
    p.add_argument("--force", action="store_true", help="Render even if lint reports errors")
    p.set_defaults(func=cmd_render)

    p = sub.add_parser("plan", help="Generate a manifest for entities and their sources")
    p.add_argument("--project", required=True)
    p.add_argument("--entity", action="append", required=True, help="ENTITY=SOURCE[,SOURCE...]; repeatable")
    p.add_argument("--schema", default=None, help="Warehouse schema for generated models")
    p.add_argument("--no-metrics", action="store_true")
    p.add_argument("--out", default=None, help="Write YAML here instead of stdout")
    p.set_defaults(func=cmd_plan)

    p = sub.add_parser("docs", help="Check a markdown convention document")
    p.add_argument("document")
    p.add_argument("--json", action="store_true")
    p.set_defaults(func=cmd_docs)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8001)
    p.set_defaults(func=cmd_serve)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        return args.func(args)
    except argparse.ArgumentTypeError as e:
        ap.error(str(e))
    except (StagewiseError, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        for problem in getattr(e, "problems", None) or []:
            print(f"  - {problem}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
