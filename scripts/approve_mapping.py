#!/usr/bin/env python3
"""
Approve a mapping set by writing its checksum to APPROVED_FINGERPRINT.

Usage:
    python scripts/approve_mapping.py [mapping_set_directory]

If no directory is given, defaults to finance_config/sets/default/

The script:
  1. Loads the mapping set YAML files
  2. Validates the mapping (errors abort, warnings are printed)
  3. Writes the SHA-256 checksum to APPROVED_FINGERPRINT

The APPROVED_FINGERPRINT file is a separate git artifact from the
YAML files.  Changing any statement file without re-running approval
will cause get_active_mapping() to raise MappingIntegrityError.
"""

import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from finance_config.integrity import PINFILE_NAME  # noqa: E402
from finance_config.loader import load_mapping_set  # noqa: E402
from finance_config.validator import validate_mapping  # noqa: E402


def approve(set_dir: Path) -> str:
    """Load, validate, and write the pin file.

    Returns the checksum that was written.
    """
    print(f"Loading mapping set from: {set_dir}")
    mapping = load_mapping_set(set_dir)
    print(f"  name:       {mapping.name}")
    print(f"  version:    {mapping.version}")
    print(f"  statements: {', '.join(sorted(s.value for s in mapping.statements))}")

    print("Validating...")
    result = validate_mapping(mapping)
    if not result.is_valid:
        print("VALIDATION FAILED:")
        for err in result.errors:
            print(f"  ERROR: {err}")
        sys.exit(1)
    for w in result.warnings:
        print(f"  WARNING: {w}")

    print(f"  checksum: {mapping.checksum}")
    pin_path = set_dir / PINFILE_NAME
    pin_path.write_text(mapping.checksum + "\n")
    print(f"Wrote {pin_path}")
    return mapping.checksum


def main():
    if len(sys.argv) > 1:
        target = Path(sys.argv[1])
    else:
        target = ROOT / "finance_config" / "sets" / "default"

    if not target.is_dir():
        print(f"Error: directory not found: {target}", file=sys.stderr)
        sys.exit(1)

    approve(target)
    print("Done. Mapping set is now pinned.")


if __name__ == "__main__":
    main()
