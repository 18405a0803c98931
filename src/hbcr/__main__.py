"""Resolve a character build from the command line.

Usage examples:
    python -m hbcr resolve build.json
    python -m hbcr resolve build.json --steps

``build.json`` holds either ``{"classes": [...], "selections": {...}}`` or a per-level
``{"timeline": [...], "selections": {...}}``.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure the src directory is on sys.path when running as a script
_SRC_DIR = Path(__file__).resolve().parents[1]
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from hbcr.application.services.build_service import BuildService
from hbcr.bootstrap import create_build_service
from hbcr.domain.models.resolution import ClassEntry, ResolveInput


def _resolve_input_from_payload(payload: dict) -> tuple[ResolveInput | None, list]:
    selections = payload.get("selections") or {}
    timeline = payload.get("timeline")
    if isinstance(timeline, list):
        return None, timeline
    classes = [
        ClassEntry(
            class_id=str(row.get("classId") or ""),
            level=int(row.get("level") or 0),
            subclass_id=row.get("subclassId") or None,
        )
        for row in payload.get("classes") or []
        if isinstance(row, dict)
    ]
    return ResolveInput(classes=classes, selections=selections), []


def run_resolve(service: BuildService, payload: dict, *, include_steps: bool = False) -> dict:
    resolve_input, timeline = _resolve_input_from_payload(payload)
    if resolve_input is None:
        output = service.resolve_timeline(timeline, payload.get("selections") or {})
    else:
        output = service.resolve(resolve_input)
    result = output.to_dict()

    if include_steps:
        result["steps"] = [
            {
                "classId": summary.class_id,
                "level": summary.level,
                "steps": [
                    step.to_dict()
                    for step in service.build_steps(summary.class_id, summary.subclass_id, summary.level)
                ],
            }
            for summary in output.per_class
            if summary.error is None
        ]
    return result


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(level=os.getenv("HBCR_LOG_LEVEL", "WARNING").upper())

    parser = argparse.ArgumentParser(prog="hbcr", description="Resolve character builds against leveling tables")
    subcommands = parser.add_subparsers(dest="command", required=True)
    resolve_parser = subcommands.add_parser("resolve", help="Resolve a build file and print the result as JSON")
    resolve_parser.add_argument("build", type=Path, help="Path to a build JSON file")
    resolve_parser.add_argument("--steps", action="store_true", help="Include quota-driven pick steps per class")
    args = parser.parse_args(argv)

    try:
        payload = json.loads(args.build.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("Build file must contain a JSON object")
        service = create_build_service()
        result = run_resolve(service, payload, include_steps=args.steps)
    except Exception as exc:
        print(f"Could not resolve build: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
