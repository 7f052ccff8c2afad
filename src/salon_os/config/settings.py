"""
Configuration settings using dataclasses.
"""
import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
from . import defaults


def _optional_ratio(raw: Optional[str]) -> Optional[str]:
    if raw is None or str(raw).strip().lower() in ("", "none", "off"):
        return None
    return str(raw)


@dataclass
class SalonOSSettings:
    """Central configuration for the salon stock core."""

    # Database settings
    db_path: str = field(default=defaults.DEFAULT_DB_PATH)
    catalog_path: str = field(default=defaults.DEFAULT_CATALOG_PATH)

    # Stock status settings; critical_ratio=None gives a single "low" tier
    critical_ratio: Optional[str] = field(default=defaults.DEFAULT_CRITICAL_RATIO)
    emit_resolved_alerts: bool = field(default=defaults.DEFAULT_EMIT_RESOLVED_ALERTS)

    # Commit path
    lock_timeout_s: float = field(default=defaults.DEFAULT_LOCK_TIMEOUT_S)

    @classmethod
    def load_from_env(cls) -> 'SalonOSSettings':
        """Load settings from environment variables."""
        return cls(
            db_path=os.getenv("SALONOS_DB_PATH", defaults.DEFAULT_DB_PATH),
            catalog_path=os.getenv("SALONOS_CATALOG_PATH", defaults.DEFAULT_CATALOG_PATH),
            critical_ratio=_optional_ratio(os.getenv("SALONOS_CRITICAL_RATIO", defaults.DEFAULT_CRITICAL_RATIO)),
            emit_resolved_alerts=os.getenv("SALONOS_EMIT_RESOLVED_ALERTS", str(defaults.DEFAULT_EMIT_RESOLVED_ALERTS)).lower() == "true",
            lock_timeout_s=float(os.getenv("SALONOS_LOCK_TIMEOUT_S", defaults.DEFAULT_LOCK_TIMEOUT_S)),
        )

    def status_policy(self):
        """Build the stock status policy these settings describe."""
        from salon_os.stock.status import StatusPolicy

        ratio = _optional_ratio(self.critical_ratio)
        return StatusPolicy(critical_ratio=Decimal(ratio) if ratio is not None else None)


# Global settings instance
settings = SalonOSSettings.load_from_env()
