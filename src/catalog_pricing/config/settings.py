"""
Centralized settings and path configuration for the catalog pricing engine.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where catalog_data/ lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'catalog_data').is_dir() or (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Seed catalog (directory of CSV files, or a single workbook)
    catalog_dir: Path
    catalog_workbook: Optional[Path] = None

    # Output files
    build_report: Optional[Path] = None

    # Money and booking defaults
    money_places: int = 2
    default_booking_duration: int = 60

    log_level: str = "INFO"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure."""
        root = project_root or get_project_root()

        workbook = root / 'catalog_data' / 'catalog.xlsx'

        return cls(
            project_root=root,
            catalog_dir=root / 'catalog_data',
            catalog_workbook=workbook if workbook.exists() else None,
            build_report=root / 'catalog_data' / 'outputs' / 'build_report.json',
            log_level=os.environ.get('CATALOG_PRICING_LOG_LEVEL', 'INFO').upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
