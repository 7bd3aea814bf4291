"""
PinKeeper - DNSLink-driven IPFS pin keeper

Keeps a local IPFS node pinned to the single "current" object published
through a DNSLink TXT record, and unpins everything it pinned before.

Quick Start:
    $ export CHECKPOINTS_HOSTNAME=checkpoints.example.org
    $ pinkeeper run        # pin and reconcile every hour
    $ pinkeeper test       # one-shot verification run

Features:
    - Swarm readiness gating before any pin work
    - DNSLink version discovery (_dnslink.<hostname> TXT)
    - Convergent pin reconciliation (add current, unpin stale)
    - Local IPFS daemon or remote IPFS HTTP API
"""

__version__ = "1.0.0"
__author__ = "PinKeeper Developers"

__all__ = ["__version__"]
