"""Money helpers for bookings; every amount derivation lives here"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ...config import DEPOSIT_RATE, PLATFORM_FEE

CENT = Decimal("0.01")


def _dec(amount) -> Decimal:
    return Decimal(str(amount))


def round_money(amount) -> float:
    """Round to cents, halves away from zero"""
    return float(_dec(amount).quantize(CENT, rounding=ROUND_HALF_UP))


def to_minor_units(amount) -> int:
    """Convert a currency amount to integer cents by rounding (never truncating)"""
    return int((_dec(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class BookingAmounts:
    total_cost: float
    deposit_amount: float
    remaining_amount: float
    platform_fee: float


def compute_booking_amounts(
    base_price: float, add_on_costs: list[float], deposit_rate: float = DEPOSIT_RATE
) -> BookingAmounts:
    """totalCost = depositAmount + remainingAmount always holds to the cent"""
    total = round_money(sum((_dec(c) for c in add_on_costs), _dec(base_price)))
    deposit = round_money(_dec(total) * _dec(deposit_rate))
    remaining = round_money(_dec(total) - _dec(deposit))
    return BookingAmounts(
        total_cost=total,
        deposit_amount=deposit,
        remaining_amount=remaining,
        platform_fee=PLATFORM_FEE,
    )


def effective_platform_fee(platform_fee: Optional[float]) -> float:
    return PLATFORM_FEE if platform_fee is None else platform_fee


def service_amount(total_cost: float, platform_fee: Optional[float]) -> float:
    """Business share of a booking, derived on read and never stored"""
    return round_money(_dec(total_cost) - _dec(effective_platform_fee(platform_fee)))


def checkout_total(deposit_amount: float, platform_fee: Optional[float]) -> float:
    """What the customer pays through the platform: the deposit plus the platform fee"""
    return round_money(_dec(deposit_amount) + _dec(effective_platform_fee(platform_fee)))


def cancellation_split(
    deposit_amount: float, cancelled_by: str, deposit_paid: bool
) -> tuple[float, float]:
    """
    Return (refund to customer, payout to business) for a cancelled booking.

    Customer cancellations forfeit half the deposit to the business; business
    cancellations refund the whole deposit. The platform fee is never refunded.
    """
    if not deposit_paid:
        return 0.0, 0.0
    if cancelled_by == "customer":
        payout = round_money(_dec(deposit_amount) / 2)
        return round_money(_dec(deposit_amount) - _dec(payout)), payout
    return round_money(deposit_amount), 0.0
