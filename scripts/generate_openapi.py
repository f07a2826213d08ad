#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
from pathlib import Path

import yaml

from pvdtime.api.routes import app


def generate_schema_dict() -> dict:
    """Return the OpenAPI schema dict from the FastAPI app."""
    return app.openapi()


def write_output(schema: dict, out_path: Path, fmt: str) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "yaml":
        text = yaml.safe_dump(schema, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(schema, indent=2, ensure_ascii=False)
    out_path.write_text(text, encoding="utf-8")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate the OpenAPI schema of the playtime server.")
    parser.add_argument(
        "--out",
        type=Path,
        default=Path("openapi.yaml"),
        help="Output file path (default: openapi.yaml)",
    )
    parser.add_argument(
        "--format",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format (default: yaml)",
    )
    args = parser.parse_args()

    write_output(generate_schema_dict(), args.out, args.format)
    print(f"OpenAPI schema written to {args.out} in {args.format.upper()} format")


if __name__ == "__main__":
    main()
