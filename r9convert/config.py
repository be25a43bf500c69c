"""
Runtime configuration.

Values come from environment variables so the airframe identity written
into every output file can be set per installation. Ingestion sites assign
aircraft profiles from these fields, so set at least the aircraft ident.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Optional


ENV_PREFIX = "R9CONVERT_"

BOUNDARY_WINDOW_S = int(os.getenv(f"{ENV_PREFIX}BOUNDARY_WINDOW_S", "30"))  # groups PFD/MFD power-ons
MAX_WORKERS = int(os.getenv(f"{ENV_PREFIX}MAX_WORKERS", str(min(32, (os.cpu_count() or 1) + 4))))


def _env(name: str, default: str) -> str:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


@dataclass(frozen=True)
class AirframeInfo:
    """Identity of the emulated Garmin unit, written as the first output line."""

    log_version: str = field(default_factory=lambda: _env("LOG_VERSION", "1.00"))
    log_content_version: str = field(default_factory=lambda: _env("LOG_CONTENT_VERSION", "1.02"))
    product: str = field(default_factory=lambda: _env("PRODUCT", "GDU 460"))
    aircraft_ident: str = field(default_factory=lambda: _env("AIRCRAFT_IDENT", ""))
    unit_software_part_number: str = field(
        default_factory=lambda: _env("UNIT_SOFTWARE_PART_NUMBER", "710-00118-000")
    )
    software_version: str = field(default_factory=lambda: _env("SOFTWARE_VERSION", "9.00"))
    system_id: str = field(default_factory=lambda: _env("SYSTEM_ID", ""))
    unit: str = field(default_factory=lambda: _env("UNIT", "PFD1"))

    def header_cells(self) -> list[str]:
        return [
            "#airframe_info",
            f'log_version="{self.log_version}"',
            f'log_content_version="{self.log_content_version}"',
            f'product="{self.product}"',
            f'aircraft_ident="{self.aircraft_ident}"',
            f'unit_software_part_number="{self.unit_software_part_number}"',
            f'product="{self.product}"',
            f'software_version="{self.software_version}"',
            f'system_id="{self.system_id}"',
            f'unit="{self.unit}"',
        ]

    def with_overrides(
        self,
        aircraft_ident: Optional[str] = None,
        system_id: Optional[str] = None,
        product: Optional[str] = None,
    ) -> "AirframeInfo":
        """Return a copy with any non-None CLI overrides applied."""
        changes = {
            key: value
            for key, value in (
                ("aircraft_ident", aircraft_ident),
                ("system_id", system_id),
                ("product", product),
            )
            if value is not None
        }
        return replace(self, **changes)
