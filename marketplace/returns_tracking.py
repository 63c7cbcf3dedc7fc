"""
Return shipment tracking numbers.

A tracking submission is stored on the return as one string: the carrier code
and the number joined by a colon, or the bare number when the buyer did not
pick a carrier.
"""

from dataclasses import dataclass
from typing import Optional


CARRIERS = [
    ('fan_courier', 'FAN Courier'),
    ('sameday', 'Sameday'),
    ('cargus', 'Cargus'),
    ('dpd', 'DPD'),
    ('gls', 'GLS'),
    ('royal_mail', 'Royal Mail'),
    ('dhl', 'DHL'),
    ('ups', 'UPS'),
    ('fedex', 'FedEx'),
    ('other', 'Other'),
]

CARRIER_LABELS = dict(CARRIERS)

SEPARATOR = ':'


@dataclass(frozen=True)
class TrackingInfo:
    number: str
    carrier: Optional[str] = None

    @property
    def carrier_label(self) -> Optional[str]:
        if not self.carrier:
            return None
        return CARRIER_LABELS.get(self.carrier, self.carrier)

    def to_dict(self):
        return {
            'carrier': self.carrier,
            'carrier_label': self.carrier_label,
            'number': self.number,
        }


def encode_tracking(number: str, carrier: Optional[str] = None) -> str:
    """Pack a carrier code and tracking number into the stored form."""
    if carrier:
        return f"{carrier}{SEPARATOR}{number}"
    return number


def decode_tracking(value: Optional[str]) -> Optional[TrackingInfo]:
    """
    Unpack a stored tracking string.

    Exactly one colon with text on both sides gives carrier and number;
    anything else is a bare number.
    """
    if not value:
        return None
    parts = value.split(SEPARATOR)
    if len(parts) == 2 and all(parts):
        return TrackingInfo(number=parts[1], carrier=parts[0])
    return TrackingInfo(number=value)
