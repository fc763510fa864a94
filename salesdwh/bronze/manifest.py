"""
Fixed manifest of CSV extracts loaded into the bronze layer.

Each entry maps one source file to one bronze table. Entries are grouped by
source system and loaded in the order listed here.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

from salesdwh.config import Config

SOURCE_DIRECTORIES = {
    "crm": "source_crm",
    "erp": "source_erp",
}

SOURCE_TITLES = {
    "crm": "Loading CRM Tables",
    "erp": "Loading ERP Tables",
}


@dataclass(frozen=True)
class LoadManifestEntry:
    """Static mapping of one source file onto one bronze table."""

    table: str
    source: str
    file_name: str
    error_file_name: str

    @property
    def qualified_table(self) -> str:
        return f"{Config.BRONZE_SCHEMA}.{self.table}"


@dataclass(frozen=True)
class ResolvedEntry:
    """A manifest entry bound to the paths of one run."""

    entry: LoadManifestEntry
    source_path: Path
    error_path: Path

    @property
    def table(self) -> str:
        return self.entry.table

    @property
    def qualified_table(self) -> str:
        return self.entry.qualified_table


MANIFEST: Tuple[LoadManifestEntry, ...] = (
    LoadManifestEntry("crm_cust_info", "crm", "cust_info.csv", "error_crm_cust_info.csv"),
    LoadManifestEntry("crm_prd_info", "crm", "prd_info.csv", "error_crm_prd_info.csv"),
    LoadManifestEntry(
        "crm_sales_details", "crm", "sales_details.csv", "error_crm_sales_details.csv"
    ),
    LoadManifestEntry("erp_cust_az12", "erp", "CUST_AZ12.csv", "error_erp_cust_az12.csv"),
    LoadManifestEntry("erp_loc_a101", "erp", "LOC_A101.csv", "error_erp_loc_a101.csv"),
    LoadManifestEntry(
        "erp_px_cat_g1v2", "erp", "PX_CAT_G1V2.csv", "error_erp_px_cat_g1v2.csv"
    ),
)


def normalize_base_path(base_path) -> Path:
    """
    Normalize the base directory the source folders live under.

    Surrounding whitespace is stripped and ``~`` expanded; a trailing
    separator is irrelevant once the value is a Path.

    Raises:
        ValueError: If the base path is empty.
    """
    raw = str(base_path).strip() if base_path is not None else ""
    if not raw:
        raise ValueError("A base directory for the source files is required")
    return Path(raw).expanduser()


def resolve_source_dirs(base_path) -> Dict[str, Path]:
    """
    Derive the per-source-system directories from the base directory.

    Returns:
        Dict mapping source key ('crm', 'erp') to its directory.
    """
    base = normalize_base_path(base_path)
    return {source: base / folder for source, folder in SOURCE_DIRECTORIES.items()}


def resolve_entry(entry: LoadManifestEntry, source_dirs: Dict[str, Path]) -> ResolvedEntry:
    """Bind a manifest entry to its source and error-capture paths."""
    directory = source_dirs[entry.source]
    return ResolvedEntry(
        entry=entry,
        source_path=directory / entry.file_name,
        error_path=directory / entry.error_file_name,
    )
