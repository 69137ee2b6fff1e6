"""Dump the ODBC sections of the Windows registry to a TOML snapshot for odbcui."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from odbcui.catalog import OdbcCatalog
from odbcui.config import CONFIG_FILE, load_config, save_config
from odbcui.store import RegistryStore, RegistryView, StoreAccessError, write_snapshot

DEFAULT_OUTPUT = CONFIG_FILE.parent / "snapshot.toml"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT, help="Snapshot file to write")
    parser.add_argument(
        "--view",
        choices=[view.value for view in RegistryView],
        default=RegistryView.DEFAULT.value,
        help="Registry view to read on 64-bit Windows",
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        help="Do not point the odbcui config at the new snapshot",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    catalog = OdbcCatalog(RegistryStore(args.view))
    try:
        data = catalog.export_snapshot()
    except StoreAccessError as exc:
        print(f"Cannot read the registry: {exc}", file=sys.stderr)
        return 1
    write_snapshot(data, args.output)
    locations = sum(len(entries) for entries in data.values())
    print(f"Wrote {locations} registry keys to {args.output}")
    if not args.no_config:
        save_config(load_config().with_snapshot(str(args.output)))
        print(f"Updated {CONFIG_FILE} to read from the snapshot")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
