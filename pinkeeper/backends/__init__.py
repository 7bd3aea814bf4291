"""
Content store backends for PinKeeper.

Supports a locally owned IPFS daemon and a remote IPFS HTTP API.
"""

from .base import ContentStore
from .ipfs_backend import IPFSStore, api_multiaddr
from .local_node import LocalIPFSNode

__all__ = ["ContentStore", "IPFSStore", "LocalIPFSNode", "api_multiaddr"]
