"""Borsh account builders shared by the governance tests."""

from __future__ import annotations

import struct
from collections.abc import Callable

import pytest

from realmwatch.governance.layout import AccountType, encode_pubkey

AccountBuilder = Callable[..., bytes]


def _string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def _opt_i64(value: int | None) -> bytes:
    if value is None:
        return b"\x00"
    return b"\x01" + struct.pack("<q", value)


def key(n: int) -> bytes:
    return bytes([n]) * 32


def build_proposal_v2(
    governance: bytes,
    state: int = 2,
    name: str = "Proposal",
    description: str = "https://example.com/p",
    voting_completed_at: int | None = None,
    multi_choice: bool = False,
) -> bytes:
    out = bytes([AccountType.PROPOSAL_V2])
    out += governance
    out += key(0xAA)  # governing_token_mint
    out += bytes([state])
    out += key(0xBB)  # token_owner_record
    out += b"\x01\x01"  # signatories
    out += b"\x01\x00\x01\x01\x01" if multi_choice else b"\x00"
    out += struct.pack("<I", 1)  # one option
    out += _string("Approve") + struct.pack("<Q", 100) + b"\x00" + b"\x00" * 6
    out += b"\x01" + struct.pack("<Q", 5)  # deny_vote_weight
    out += b"\x00"  # reserved1
    out += b"\x00"  # abstain_vote_weight
    out += b"\x00"  # start_voting_at
    out += struct.pack("<q", 1_700_000_000)  # draft_at
    out += b"\x00"  # signing_off_at
    out += _opt_i64(1_700_000_100)  # voting_at
    out += b"\x00"  # voting_at_slot
    out += _opt_i64(voting_completed_at)
    out += b"\x00"  # executing_at
    out += b"\x00"  # closed_at
    out += b"\x00"  # execution_flags
    out += b"\x00"  # max_vote_weight
    out += b"\x00"  # max_voting_time
    out += b"\x01\x00\x3c"  # vote_threshold: YesVotePercentage(60)
    out += b"\x00" * 64  # reserved
    out += _string(name)
    out += _string(description)
    return out


def build_proposal_v1(
    governance: bytes,
    state: int = 2,
    name: str = "Proposal",
    description: str = "",
    voting_completed_at: int | None = None,
) -> bytes:
    out = bytes([AccountType.PROPOSAL_V1])
    out += governance
    out += key(0xAA)
    out += bytes([state])
    out += key(0xBB)
    out += b"\x01\x01"
    out += struct.pack("<QQ", 10, 2)  # yes / no votes
    out += b"\x00" * 6
    out += struct.pack("<q", 1_600_000_000)  # draft_at
    out += b"\x00"  # signing_off_at
    out += b"\x00"  # voting_at
    out += b"\x00"  # voting_at_slot
    out += _opt_i64(voting_completed_at)
    out += b"\x00"  # executing_at
    out += b"\x00"  # closed_at
    out += b"\x00"  # execution_flags
    out += b"\x00"  # max_vote_weight
    out += b"\x01\x00\x3c"  # vote_threshold_percentage
    out += _string(name)
    out += _string(description)
    return out


def build_governance(realm: bytes, account_type: AccountType = AccountType.GOVERNANCE_V2) -> bytes:
    return bytes([account_type]) + realm + key(0xCC) + b"\x00" * 40


@pytest.fixture
def make_key() -> Callable[[int], bytes]:
    return key


@pytest.fixture
def pubkey() -> Callable[[int], str]:
    return lambda n: encode_pubkey(key(n))


@pytest.fixture
def proposal_v2() -> AccountBuilder:
    return build_proposal_v2


@pytest.fixture
def proposal_v1() -> AccountBuilder:
    return build_proposal_v1


@pytest.fixture
def governance_account() -> AccountBuilder:
    return build_governance
