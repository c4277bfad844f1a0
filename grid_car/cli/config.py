from __future__ import annotations

import argparse
import contextlib
import io
import json
import sys
from pathlib import Path

from grid_car.config_io import parser_defaults


def build_template() -> dict[str, dict[str, object]]:
    # Keep JSON output clean if any CLI dependency prints on import.
    with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(io.StringIO()):
        from grid_car.cli.drive import build_parser as build_drive_parser
        from grid_car.cli.rollout import build_parser as build_rollout_parser

    return {
        "drive": parser_defaults(build_drive_parser(), exclude={"config", "profile", "self_check"}),
        "rollout": parser_defaults(build_rollout_parser(), exclude={"config", "profile"}),
    }


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    ap = argparse.ArgumentParser(description="Generate a combined drive+rollout JSON config template.")
    ap.add_argument("--out", type=Path, default=Path("configs/template.json"), help="Output JSON path.")
    ap.add_argument("--stdout", action="store_true", help="Print config JSON to stdout instead of writing a file.")
    args = ap.parse_args(argv)

    text = json.dumps(build_template(), indent=2, sort_keys=True, ensure_ascii=False) + "\n"

    if bool(args.stdout):
        sys.stdout.write(text)
        return 0

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(text, encoding="utf-8")
    print(f"Wrote: {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
