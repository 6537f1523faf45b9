"""
seqarrange — entry point.

Usage:
    python -m seqarrange arrange objects.json --output schedule.json
    python -m seqarrange arrange objects.json --printer mk3s --group-size 4
    python -m seqarrange check objects.json schedule.json
    python -m seqarrange serve --port 8000
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="seqarrange",
        description="Sequential arrangement of objects on print plates")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    a = sub.add_parser("arrange", help="Arrange objects from a JSON file onto plates")
    a.add_argument("input", help="Objects JSON (list or {\"objects\": [...]})")
    a.add_argument("--output", "-o", default=None, help="Write the schedule here (default: stdout)")
    a.add_argument("--printer", default=None, help="Bundled printer name or printer JSON path")
    a.add_argument("--group-size", type=int, default=None, help="Objects per solver batch")
    a.add_argument("--config", default=None, help="JSON file with configuration overrides")
    a.add_argument("--strict", action="store_true", help="Fail if any object is left unplaced")

    c = sub.add_parser("check", help="Validate a schedule against its objects")
    c.add_argument("input", help="Objects JSON")
    c.add_argument("schedule", help="Schedule JSON produced by 'arrange'")
    c.add_argument("--printer", default=None, help="Bundled printer name or printer JSON path")

    sv = sub.add_parser("serve", help="Start the HTTP API")
    sv.add_argument("--host", default="127.0.0.1", help="Host to bind")
    sv.add_argument("--port", type=int, default=8000, help="Port to bind")

    return p


def _load_json(path: str):
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _setup(args):
    from seqarrange.arrange import head_from_printer, prepare_objects
    from seqarrange.config import DEFAULT_CONFIG, configuration_from_dict

    head = head_from_printer(args.printer) if args.printer else None
    config = DEFAULT_CONFIG
    if head is not None:
        config = config.with_overrides(
            plate_x_size=head.plate_x_size, plate_y_size=head.plate_y_size)
    if getattr(args, "config", None):
        config = configuration_from_dict(_load_json(args.config), config)
    if getattr(args, "group_size", None):
        config = config.with_overrides(object_group_size=args.group_size)

    data = _load_json(args.input)
    raw = data["objects"] if isinstance(data, dict) else data
    return prepare_objects(raw, head, config), config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "serve":
        from seqarrange.web.server import main as serve_main
        serve_main(host=args.host, port=args.port)
        return 0

    from seqarrange.arrange import (
        ArrangementError, find_violations, parse_schedule, schedule_objects,
        schedule_to_dict,
    )

    try:
        objects, config = _setup(args)
    except (ArrangementError, ValueError) as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 2

    if args.cmd == "arrange":
        try:
            result = schedule_objects(objects, config, strict=args.strict)
        except ArrangementError as exc:
            print(f"Arrangement failed: {exc}", file=sys.stderr)
            return 1
        text = json.dumps(schedule_to_dict(result), indent=2)
        if args.output:
            Path(args.output).write_text(text, encoding="utf-8")
            print(f"Wrote {len(result.plates)} plate(s) to {args.output} ({result.status})")
        else:
            print(text)
        return 0 if not result.remaining else 1

    if args.cmd == "check":
        try:
            schedule = parse_schedule(_load_json(args.schedule))
        except (KeyError, TypeError, ValueError) as exc:
            print(f"Invalid schedule: {exc!r}", file=sys.stderr)
            return 2
        ok = True
        for n, plate in enumerate(schedule.plates, 1):
            for err in find_violations(objects, plate, config):
                print(f"plate {n}: {err}")
                ok = False
        print("printable" if ok else "NOT printable")
        return 0 if ok else 1

    return 2


if __name__ == "__main__":
    sys.exit(main())
