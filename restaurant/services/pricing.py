"""Delivery fee policy.

This is the only place a delivery fee is computed. Order creation and order
quotes both call :func:`delivery_fee`; nothing else should derive a fee.

A policy maps a normalized city name to either a :class:`FlatFee` or a
:class:`ThresholdFee`. Cities not in the table pay ``DEFAULT_FEE``. Pickup
orders never pay a delivery fee.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional, Union

ZERO = Decimal('0.00')
CENT = Decimal('0.01')

@dataclass(frozen=True)
class FlatFee:
    fee: Decimal

    def apply(self, subtotal: Decimal) -> Decimal:
        return self.fee

@dataclass(frozen=True)
class ThresholdFee:
    threshold: Decimal
    fee_below: Decimal
    fee_at_or_above: Decimal

    def apply(self, subtotal: Decimal) -> Decimal:
        return self.fee_at_or_above if subtotal >= self.threshold else self.fee_below

FeeRule = Union[FlatFee, ThresholdFee]

DEFAULT_POLICY: Mapping[str, FeeRule] = {
    'lagos': ThresholdFee(Decimal('5000'), Decimal('1000'), ZERO),
    'ikeja': ThresholdFee(Decimal('5000'), Decimal('1000'), ZERO),
    'lekki': ThresholdFee(Decimal('5000'), Decimal('1000'), ZERO),
    'abuja': ThresholdFee(Decimal('7500'), Decimal('1500'), ZERO),
    'ibadan': FlatFee(Decimal('1200')),
}
DEFAULT_FEE = FlatFee(Decimal('2000'))

def normalize_city(city: Optional[str]) -> str:
    return ' '.join((city or '').split()).lower()

def delivery_fee(city: Optional[str], subtotal: Decimal,
                 policy: Mapping[str, FeeRule] = DEFAULT_POLICY,
                 default: FeeRule = DEFAULT_FEE) -> Decimal:
    rule = policy.get(normalize_city(city), default)
    return Decimal(rule.apply(Decimal(subtotal))).quantize(CENT)
