"""
Mapping Integrity — checksum pinning for approved mapping sets.

When a mapping set directory contains an APPROVED_FINGERPRINT file, the
computed checksum must match the pinned value.  This prevents accidental
edits to a reviewed report layout.

The pin file is a single line: the SHA-256 hex string produced by
``loader.compute_checksum``.  If no pin file exists the check is skipped
(draft/dev workflow).
"""

from __future__ import annotations

from pathlib import Path

from finance_kernel.exceptions import MappingIntegrityError

PINFILE_NAME = "APPROVED_FINGERPRINT"


def read_pinned_fingerprint(set_dir: Path) -> str | None:
    """Return the pinned SHA-256 hex string, or None if no pin file exists."""
    pin_path = set_dir / PINFILE_NAME
    if not pin_path.is_file():
        return None
    return pin_path.read_text().strip()


def verify_fingerprint_pin(set_name: str, checksum: str, set_dir: Path) -> None:
    """Verify that the mapping checksum matches the pin file.

    Raises:
        MappingIntegrityError: If a pin exists and the checksum differs.
    """
    pinned = read_pinned_fingerprint(set_dir)
    if pinned is None:
        return
    if checksum != pinned:
        raise MappingIntegrityError(set_name=set_name, expected=pinned, actual=checksum)
