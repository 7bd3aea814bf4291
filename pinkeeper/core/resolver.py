"""
DNSLink version discovery.

The latest published object is announced as a TXT record on
_dnslink.<hostname>, e.g. "dnslink=/ipfs/QmXYZ".
"""

import logging
from typing import Optional

import dns.asyncresolver
import dns.exception
import dns.resolver

from pinkeeper.core.content_addressing import ContentIdentifier, identifier_from_dnslink
from pinkeeper.core.errors import ResolutionError

logger = logging.getLogger(__name__)


class DNSLinkResolver:
    """
    Resolves the current content identifier from DNS.

    One query per call: no caching and no retries. Retrying is left to the
    next scheduled reconciliation tick.
    """

    def __init__(
        self,
        hostname: str,
        dns_timeout: float = 10.0,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
    ):
        """
        Initialize resolver.

        Args:
            hostname: Domain publishing the DNSLink record
            dns_timeout: Timeout for DNS queries (seconds)
            resolver: dnspython resolver to use (system resolver by default)
        """
        self.hostname = hostname
        self.dns_timeout = dns_timeout

        if resolver is None:
            resolver = dns.asyncresolver.Resolver()
            resolver.timeout = dns_timeout
            resolver.lifetime = dns_timeout
        self.resolver = resolver

    @property
    def record_name(self) -> str:
        return f"_dnslink.{self.hostname}"

    async def resolve_latest(self) -> ContentIdentifier:
        """
        Query DNS for the latest content identifier.

        Returns:
            The last path segment of the first TXT record

        Raises:
            ResolutionError: on any DNS failure or an empty record
        """
        try:
            answers = await self.resolver.resolve(self.record_name, "TXT")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as e:
            raise ResolutionError(
                f"Could not retrieve the latest checkpoints IPFS hash from: {self.hostname} ({e})"
            ) from e
        except dns.exception.DNSException as e:
            raise ResolutionError(f"Error querying DNS for: {self.hostname}: {e}") from e

        records = list(answers)
        if not records or not records[0].strings:
            raise ResolutionError(
                f"Could not retrieve the latest checkpoints IPFS hash from: {self.hostname}"
            )

        first = records[0].strings[0]
        if isinstance(first, bytes):
            first = first.decode("utf-8", errors="replace")

        cid = identifier_from_dnslink(first)
        if not cid:
            raise ResolutionError(
                f"Could not retrieve the latest checkpoints IPFS hash from: {self.hostname}"
            )

        logger.debug(f"{self.record_name} -> {cid}")
        return cid
