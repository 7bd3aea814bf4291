"""
Shared test doubles: an in-memory IPFS store and a scripted DNSLink resolver.
"""

import asyncio
from typing import Dict, List, Optional

import pytest

from pinkeeper.backends.base import ContentStore
from pinkeeper.core.content_addressing import PinRecord, RetentionClass
from pinkeeper.core.errors import PinAddError, PinListError, PinRemoveError


class FakeStore(ContentStore):
    """In-memory pin set with failure injection and call recording."""

    def __init__(self, pins: Optional[Dict[str, str]] = None, peer_answers: Optional[List] = None):
        self.pins: Dict[str, str] = dict(pins or {})  # cid -> IPFS pin type
        # each answer is a list of peers or an exception; the last one repeats
        self.peer_answers: List = list(peer_answers or [["QmPeer"]])
        self.requires_readiness = False

        self.added: List[str] = []
        self.removed: List[str] = []
        self.list_calls = 0
        self.peer_calls = 0
        self.closed = False

        self.fail_add = set()
        self.fail_remove = set()
        self.fail_list = False
        self.add_gate: Optional[asyncio.Event] = None

    @property
    def direct(self) -> set:
        return {cid for cid, kind in self.pins.items() if kind != "indirect"}

    async def list_peers(self) -> List[str]:
        self.peer_calls += 1
        answer = self.peer_answers.pop(0) if len(self.peer_answers) > 1 else self.peer_answers[0]
        if isinstance(answer, Exception):
            raise answer
        return list(answer)

    async def add_pin(self, cid: str) -> None:
        self.added.append(cid)
        if self.add_gate is not None:
            await self.add_gate.wait()
        if cid in self.fail_add:
            raise PinAddError(f"Could not pin {cid}: boom")
        self.pins[cid] = "recursive"

    async def list_pins(self) -> List[PinRecord]:
        self.list_calls += 1
        if self.fail_list:
            raise PinListError("Could not list pins: boom")
        return [
            PinRecord(cid=cid, retention=RetentionClass.from_pin_type(kind), pin_type=kind)
            for cid, kind in self.pins.items()
        ]

    async def remove_pin(self, cid: str) -> None:
        self.removed.append(cid)
        if cid in self.fail_remove:
            raise PinRemoveError(f"Could not unpin {cid}: boom")
        self.pins.pop(cid, None)

    async def close(self) -> None:
        self.closed = True


class FakeResolver:
    """Returns (or raises) scripted answers; the last one repeats."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = 0

    async def resolve_latest(self) -> str:
        self.calls += 1
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def make_store():
    return FakeStore


@pytest.fixture
def make_resolver():
    return FakeResolver
