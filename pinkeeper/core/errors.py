"""
Error taxonomy for PinKeeper.

Everything raised inside a reconciliation tick derives from PinKeeperError
and is caught at the tick boundary.
"""


class PinKeeperError(Exception):
    """Base class for all PinKeeper errors."""


class ConfigError(PinKeeperError):
    """Invalid environment configuration."""


class ReadinessTimeout(PinKeeperError):
    """The node did not join the swarm within the allowed time."""


class ResolutionError(PinKeeperError):
    """DNSLink lookup failed or returned no usable record."""


class StoreError(PinKeeperError):
    """The IPFS node is unreachable or an API call failed."""


class PinAddError(StoreError):
    """Pinning a content identifier failed."""


class PinListError(StoreError):
    """Listing the pin set failed."""


class PinRemoveError(StoreError):
    """Unpinning a content identifier failed."""
