"""Price estimate shown to drivers and customers before bidding."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple

from drivers.models import VehicleClass

CENTS = Decimal("0.01")

# (price per km, minimum price)
VEHICLE_RATES = {
    VehicleClass.PICKUP_VAN: (Decimal("0.80"), Decimal("10.00")),
    VehicleClass.BOX_VAN: (Decimal("1.20"), Decimal("15.00")),
    VehicleClass.TRUCK_3_5T: (Decimal("1.80"), Decimal("25.00")),
    VehicleClass.HEAVY_TRUCK: (Decimal("2.50"), Decimal("40.00")),
}

LOWER_SPREAD = Decimal("0.90")
UPPER_SPREAD = Decimal("1.20")


def estimate_price_range(distance_km, vehicle_class: str) -> Tuple[Decimal, Decimal]:
    """Return (min, max) expected prices for a trip of ``distance_km``."""
    per_km, minimum = VEHICLE_RATES.get(vehicle_class, VEHICLE_RATES[VehicleClass.BOX_VAN])
    base = max(Decimal(str(distance_km)) * per_km, minimum)
    low = max(base * LOWER_SPREAD, minimum)
    high = base * UPPER_SPREAD
    return low.quantize(CENTS, ROUND_HALF_UP), high.quantize(CENTS, ROUND_HALF_UP)
