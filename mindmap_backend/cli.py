#!/usr/bin/env python3
"""Mind map CLI - detect, convert, validate and lay out mind map JSON files."""

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from mindmap_core import (
    ConversionError,
    MindMap,
    convert,
    detect_format,
    export_mind_map,
    layered_layout,
    tree_layout,
    validate_mind_map,
    validation_summary,
)
from mindmap_core.normalizer import is_canonical_format

logger = logging.getLogger(__name__)


def _json_out(data, code=0):
    print(json.dumps(data, ensure_ascii=False))
    sys.exit(code)


def _error_out(message):
    _json_out({"status": "error", "error": message}, code=1)


def _load_json(path):
    """Read JSON from a file path, or stdin for '-'."""
    try:
        if path == "-":
            return json.load(sys.stdin)
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        _error_out(f"File not found: {path}")
    except json.JSONDecodeError as e:
        _error_out(f"Invalid JSON in {path}: {e}")


def _write_output(data, output):
    if output:
        with open(output, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        _json_out({"status": "ok", "output": output})
    _json_out(data)


def _load_canonical(path):
    data = _load_json(path)
    if not is_canonical_format(data):
        _error_out("Not a canonical mind map (expected 'nodes' and 'edges')")
    try:
        return MindMap.from_json_dict(data)
    except ValidationError as e:
        _error_out(f"Malformed mind map: {e.error_count()} invalid fields")


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_detect(args):
    data = _load_json(args.file)
    try:
        source_format = detect_format(data, lossy=not args.strict)
    except ConversionError as e:
        _error_out(str(e))
    _json_out({"status": "ok", "format": source_format.value})


def cmd_convert(args):
    data = _load_json(args.file)
    try:
        result = convert(data, relayout=args.relayout, lossy=not args.strict)
    except ConversionError as e:
        _error_out(str(e))
    _write_output(export_mind_map(result.model), args.output)


def cmd_validate(args):
    model = _load_canonical(args.file)
    issues = validate_mind_map(model, allow_dag=args.allow_dag)
    summary = validation_summary(issues)
    _json_out({
        "status": "ok" if summary["valid"] else "invalid",
        "summary": summary,
        "issues": [i.to_dict() for i in issues],
    })


def cmd_layout(args):
    model = _load_canonical(args.file)
    if args.algorithm == "tree":
        model = tree_layout(model)
    else:
        model = layered_layout(model, direction=args.direction)
    _write_output(export_mind_map(model), args.output)


# ── Parser ───────────────────────────────────────────────────────────────────

def build_parser():
    parser = argparse.ArgumentParser(prog="mindmap", description=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("detect", help="Report which source format a JSON file has")
    p.add_argument("file")
    p.add_argument("--strict", action="store_true", help="Reject unrecognized objects instead of lossy fallback")
    p.set_defaults(func=cmd_detect)

    p = sub.add_parser("convert", help="Convert any supported JSON into the canonical format")
    p.add_argument("file")
    p.add_argument("-o", "--output")
    p.add_argument("--relayout", action="store_true", help="Re-run the layered layout on canonical input")
    p.add_argument("--strict", action="store_true", help="Reject unrecognized objects instead of lossy fallback")
    p.set_defaults(func=cmd_convert)

    p = sub.add_parser("validate", help="Check a canonical file for structural issues")
    p.add_argument("file")
    p.add_argument("--allow-dag", action="store_true", help="Accept nodes with several parents")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("layout", help="Recompute positions of a canonical file")
    p.add_argument("file")
    p.add_argument("-o", "--output")
    p.add_argument("--algorithm", choices=["layered", "tree"], default="layered")
    p.add_argument("--direction", choices=["LR", "TB"], default="LR")
    p.set_defaults(func=cmd_layout)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    args.func(args)


if __name__ == "__main__":
    main()
