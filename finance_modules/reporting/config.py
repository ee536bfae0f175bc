"""
Reporting Configuration Schema.

Controls which mapping set statements are generated from and how the
independent statements of an ``all`` request are scheduled.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Self

from finance_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.
    """

    # Mapping set name under the mapping directory
    mapping_set: str = "default"

    # Override for finance_config/sets/
    mapping_dir: Path | None = None

    # Run income statement and balance sheet concurrently for "all"
    parallel_statements: bool = True

    # Worker threads used when parallel_statements is enabled
    max_workers: int = 2

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if not self.mapping_set:
            raise ValueError("mapping_set cannot be empty")
        if self.mapping_dir is not None and not isinstance(self.mapping_dir, Path):
            self.mapping_dir = Path(self.mapping_dir)

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
