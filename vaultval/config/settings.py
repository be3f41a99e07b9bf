"""Application configuration settings."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, Tuple


@dataclass
class Settings:
    """Settings for the valuation and conversion engine."""

    # FX Configuration
    ecb_api_url: str = "https://data-api.ecb.europa.eu/service/data/EXR"
    fx_api_base_url: str = "http://localhost:8080"
    http_timeout_seconds: float = 30.0
    rate_lookback_days: int = 7
    base_currency: str = "USD"

    # Used only while an online rate is being fetched
    fallback_fx_rates: Dict[Tuple[str, str], Decimal] = field(
        default_factory=lambda: {("USD", "VND"): Decimal("24000")}
    )
    stablecoins: FrozenSet[str] = field(
        default_factory=lambda: frozenset(
            {"USDT", "USDC", "BUSD", "TUSD", "FDUSD", "USDP", "DAI"}
        )
    )

    # Performance Settings
    noise_threshold_percent: Decimal = Decimal("0.01")  # 1 basis point
    min_annualization_days: int = 30
    days_per_year: Decimal = Decimal("365.25")

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
