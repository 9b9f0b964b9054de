"""
Typed access to the coordinator's Django settings.

Each accessor reads its settings dict at call time (so ``override_settings``
works in tests) and fills missing keys with defaults.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import List, Tuple

from django.conf import settings


@dataclass(frozen=True)
class DispatchTier:
    radius_km: float
    wait_seconds: int


@dataclass(frozen=True)
class DispatchConfig:
    tiers: Tuple[DispatchTier, ...]
    initial_delay_seconds: float
    escalation_delay_seconds: float
    max_retries: int
    retry_backoff_seconds: int

    def tier(self, step: int):
        """Return the tier for ``step`` or None when the ladder is exhausted."""
        if 0 <= step < len(self.tiers):
            return self.tiers[step]
        return None


@dataclass(frozen=True)
class AuctionConfig:
    bid_ttl: timedelta


@dataclass(frozen=True)
class EscrowConfig:
    auto_confirm_after: timedelta
    geofence_meters: float
    default_platform_fee_rate: Decimal


@dataclass(frozen=True)
class CancellationConfig:
    grace_period: timedelta
    late_cancellation_fee: Decimal
    strike_threshold: int
    strike_reset_after: timedelta


@dataclass(frozen=True)
class GatewayConfig:
    api_url: str
    api_key: str
    webhook_secret: str
    return_url: str
    timeout_seconds: float


DEFAULT_TIERS: List[Tuple[float, int]] = [(5, 180), (10, 120), (20, 120), (30, 60)]


def _section(name):
    return getattr(settings, name, None) or {}


def get_dispatch_config() -> DispatchConfig:
    conf = _section("FREIGHT_DISPATCH")
    tiers = tuple(
        DispatchTier(radius_km=float(radius), wait_seconds=int(wait))
        for radius, wait in conf.get("TIERS", DEFAULT_TIERS)
    )
    return DispatchConfig(
        tiers=tiers,
        initial_delay_seconds=float(conf.get("INITIAL_DELAY_SECONDS", 0.1)),
        escalation_delay_seconds=float(conf.get("ESCALATION_DELAY_SECONDS", 1)),
        max_retries=int(conf.get("MAX_RETRIES", 3)),
        retry_backoff_seconds=int(conf.get("RETRY_BACKOFF_SECONDS", 5)),
    )


def get_auction_config() -> AuctionConfig:
    conf = _section("FREIGHT_AUCTION")
    return AuctionConfig(bid_ttl=timedelta(seconds=int(conf.get("BID_TTL_SECONDS", 600))))


def get_escrow_config() -> EscrowConfig:
    conf = _section("FREIGHT_ESCROW")
    return EscrowConfig(
        auto_confirm_after=timedelta(seconds=int(conf.get("AUTO_CONFIRM_AFTER_SECONDS", 900))),
        geofence_meters=float(conf.get("GEOFENCE_METERS", 100)),
        default_platform_fee_rate=Decimal(str(conf.get("DEFAULT_PLATFORM_FEE_RATE", "0.15"))),
    )


def get_cancellation_config() -> CancellationConfig:
    conf = _section("FREIGHT_CANCELLATION")
    return CancellationConfig(
        grace_period=timedelta(seconds=int(conf.get("GRACE_PERIOD_SECONDS", 300))),
        late_cancellation_fee=Decimal(str(conf.get("LATE_CANCELLATION_FEE", "5.00"))),
        strike_threshold=int(conf.get("STRIKE_THRESHOLD", 3)),
        strike_reset_after=timedelta(days=int(conf.get("STRIKE_RESET_DAYS", 30))),
    )


def get_gateway_config() -> GatewayConfig:
    conf = _section("PAYMENT_GATEWAY")
    return GatewayConfig(
        api_url=conf.get("API_URL", "").rstrip("/"),
        api_key=conf.get("API_KEY", ""),
        webhook_secret=conf.get("WEBHOOK_SECRET", ""),
        return_url=conf.get("RETURN_URL", ""),
        timeout_seconds=float(conf.get("TIMEOUT_SECONDS", 10)),
    )
