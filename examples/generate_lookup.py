#!/usr/bin/env python3
"""Example: turn saved e-Manual pages into records and an address lookup module."""

import sys
from pathlib import Path

from pydxl_tables import Device, OutputMode, generate, merge_tables, normalize_grid
from pydxl_tables.errors import MergeError, NormalizeError


def main() -> None:
    # Saved pages named after their e-Manual URL, e.g. pages/x/xl430-w250.html
    pages = sorted(Path("pages").glob("*/*.html"))
    devices = []
    for page in pages:
        url = f"https://emanual.robotis.com/docs/en/dxl/{page.parent.name}/{page.stem}/"
        try:
            result = normalize_grid(merge_tables(page.read_text(encoding="utf-8")))
        except (MergeError, NormalizeError) as e:
            print(f"{page}: skipped ({e})", file=sys.stderr)
            continue
        devices.append(Device.from_url(url, page.stem.upper(), result.records))
        print(f"{page}: {len(result.records)} records, indirect range {result.indirect_range}")

    if not devices:
        print("No pages found under pages/", file=sys.stderr)
        sys.exit(1)

    artifact = generate(devices, mode=OutputMode.ADDRESS)
    Path("dxl_control_tables.py").write_text(artifact.source, encoding="utf-8")
    Path("manifest.json").write_text(artifact.manifest, encoding="utf-8")
    print(f"{len(artifact.field_names)} fields across {len(artifact.models)} models")


if __name__ == "__main__":
    main()
