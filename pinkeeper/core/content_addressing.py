"""
Pin data model.

Content identifiers are opaque strings compared by exact equality. Pins are
either direct retention roots or indirect (retained only because a direct
pin references them).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

# Opaque IPFS CID string, e.g. "QmXYZ..." or "bafy..."
ContentIdentifier = str


class RetentionClass(Enum):
    """Retention class of a pin."""
    DIRECT = "direct"
    INDIRECT = "indirect"

    @classmethod
    def from_pin_type(cls, pin_type: str) -> "RetentionClass":
        """
        Map an IPFS pin type onto a retention class.

        IPFS reports "recursive" and "direct" for explicit roots and
        "indirect" for blocks held by a recursive pin.
        """
        if pin_type.lower() == "indirect":
            return cls.INDIRECT
        return cls.DIRECT


@dataclass(frozen=True)
class PinRecord:
    """One entry of the node's pin set."""
    cid: ContentIdentifier
    retention: RetentionClass
    pin_type: str = "recursive"  # raw IPFS type

    @property
    def is_direct(self) -> bool:
        return self.retention is RetentionClass.DIRECT


def direct_pins(records: Iterable[PinRecord]) -> List[ContentIdentifier]:
    """Identifiers of the direct pins, in listing order."""
    return [record.cid for record in records if record.is_direct]


def identifier_from_dnslink(value: str) -> ContentIdentifier:
    """
    Extract the content identifier from a DNSLink value.

    Args:
        value: TXT value such as "dnslink=/ipfs/QmXYZ"

    Returns:
        The final path segment ("QmXYZ")
    """
    return value.strip().split("/")[-1]
