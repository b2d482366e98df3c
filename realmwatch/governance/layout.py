"""Borsh layouts for the SPL Governance accounts the monitor reads.

Only the fields the monitor needs are surfaced; everything else is walked
over so the trailing ``name`` / ``description_link`` strings can be reached.
"""

from __future__ import annotations

import datetime
import struct
from collections.abc import Callable
from enum import IntEnum
from typing import TypeVar

import base58

from realmwatch.core.types import NO_DESCRIPTION, ProposalRecord, ProposalState
from realmwatch.governance.exceptions import AccountDecodeError

T = TypeVar("T")

PUBKEY_LEN = 32

# Every governance account stores its realm right after the type byte.
REALM_OFFSET = 1


class AccountType(IntEnum):
    """``GovernanceAccountType`` discriminants (first byte of every account)."""

    UNINITIALIZED = 0
    REALM_V1 = 1
    TOKEN_OWNER_RECORD_V1 = 2
    GOVERNANCE_V1 = 3
    PROGRAM_GOVERNANCE_V1 = 4
    PROPOSAL_V1 = 5
    SIGNATORY_RECORD_V1 = 6
    VOTE_RECORD_V1 = 7
    PROPOSAL_INSTRUCTION_V1 = 8
    MINT_GOVERNANCE_V1 = 9
    TOKEN_GOVERNANCE_V1 = 10
    REALM_CONFIG = 11
    VOTE_RECORD_V2 = 12
    PROPOSAL_TRANSACTION_V2 = 13
    PROPOSAL_V2 = 14
    PROGRAM_METADATA = 15
    REALM_V2 = 16
    TOKEN_OWNER_RECORD_V2 = 17
    GOVERNANCE_V2 = 18
    PROGRAM_GOVERNANCE_V2 = 19
    MINT_GOVERNANCE_V2 = 20
    TOKEN_GOVERNANCE_V2 = 21
    SIGNATORY_RECORD_V2 = 22
    PROPOSAL_DEPOSIT = 23
    REQUIRED_SIGNATORY = 24


GOVERNANCE_ACCOUNT_TYPES: frozenset[AccountType] = frozenset({
    AccountType.GOVERNANCE_V1,
    AccountType.PROGRAM_GOVERNANCE_V1,
    AccountType.MINT_GOVERNANCE_V1,
    AccountType.TOKEN_GOVERNANCE_V1,
    AccountType.GOVERNANCE_V2,
    AccountType.PROGRAM_GOVERNANCE_V2,
    AccountType.MINT_GOVERNANCE_V2,
    AccountType.TOKEN_GOVERNANCE_V2,
})

# V2 first: current programs only create V2 proposals.
PROPOSAL_ACCOUNT_TYPES: tuple[AccountType, ...] = (
    AccountType.PROPOSAL_V2,
    AccountType.PROPOSAL_V1,
)

_PROPOSAL_STATES: tuple[ProposalState, ...] = tuple(ProposalState)


def encode_pubkey(raw: bytes) -> str:
    return base58.b58encode(raw).decode("ascii")


def decode_pubkey(value: str) -> bytes:
    """Decode a base58 address, raising ValueError unless it is 32 bytes."""
    raw = base58.b58decode(value)
    if len(raw) != PUBKEY_LEN:
        raise ValueError(f"{value!r} is not a {PUBKEY_LEN}-byte public key")
    return raw


def is_valid_pubkey(value: str) -> bool:
    try:
        decode_pubkey(value)
    except ValueError:
        return False
    return True


def account_type_filter(account_type: AccountType) -> str:
    """Base58 memcmp payload matching a single account-type byte."""
    return encode_pubkey(bytes([account_type]))


class _Reader:
    """Sequential little-endian borsh reader."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def _unpack(self, fmt: str) -> int:
        size = struct.calcsize(fmt)
        try:
            (value,) = struct.unpack_from(fmt, self._data, self._pos)
        except struct.error as exc:
            raise AccountDecodeError(f"account data truncated at offset {self._pos}") from exc
        self._pos += size
        return value

    def u8(self) -> int:
        return self._unpack("<B")

    def u16(self) -> int:
        return self._unpack("<H")

    def u32(self) -> int:
        return self._unpack("<I")

    def u64(self) -> int:
        return self._unpack("<Q")

    def i64(self) -> int:
        return self._unpack("<q")

    def skip(self, count: int) -> None:
        if self._pos + count > len(self._data):
            raise AccountDecodeError(f"account data truncated at offset {self._pos}")
        self._pos += count

    def pubkey(self) -> str:
        start = self._pos
        self.skip(PUBKEY_LEN)
        return encode_pubkey(self._data[start:self._pos])

    def string(self) -> str:
        length = self.u32()
        start = self._pos
        self.skip(length)
        try:
            return self._data[start:self._pos].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise AccountDecodeError("invalid utf-8 in string field") from exc

    def option(self, read: Callable[[], T]) -> T | None:
        flag = self.u8()
        if flag == 0:
            return None
        if flag != 1:
            raise AccountDecodeError(f"invalid option flag {flag}")
        return read()


def read_account_type(data: bytes) -> AccountType:
    if not data:
        raise AccountDecodeError("empty account data")
    try:
        return AccountType(data[0])
    except ValueError as exc:
        raise AccountDecodeError(f"unknown account type {data[0]}") from exc


def read_parent(data: bytes) -> str:
    """Return the address stored right after the type byte.

    That is the realm of a governance account and the governance of a
    proposal; the offset is the same in every V1 and V2 layout.
    """
    reader = _Reader(data)
    reader.skip(REALM_OFFSET)
    return reader.pubkey()


def _read_state(reader: _Reader) -> ProposalState:
    index = reader.u8()
    if index >= len(_PROPOSAL_STATES):
        raise AccountDecodeError(f"unknown proposal state {index}")
    return _PROPOSAL_STATES[index]


def _skip_vote_type(reader: _Reader) -> None:
    tag = reader.u8()
    if tag == 0:  # SingleChoice
        return
    if tag == 1:  # MultiChoice {choice_type, min, max, max_winning}
        reader.skip(4)
        return
    raise AccountDecodeError(f"unknown vote type {tag}")


def _skip_option_entries(reader: _Reader) -> None:
    for _ in range(reader.u32()):
        reader.string()  # label
        reader.u64()  # vote_weight
        reader.u8()  # vote_result
        reader.skip(6)  # transactions executed / count / next index


def _skip_vote_threshold(reader: _Reader) -> None:
    tag = reader.u8()
    if tag in (0, 1):  # YesVotePercentage(u8) | QuorumPercentage(u8)
        reader.u8()
    elif tag != 2:  # Disabled
        raise AccountDecodeError(f"unknown vote threshold {tag}")


def _timestamp(value: int | None) -> datetime.datetime | None:
    if value is None:
        return None
    return datetime.datetime.fromtimestamp(value, tz=datetime.UTC)


def _decode_proposal_v2(reader: _Reader) -> tuple[str, ProposalState, int | None, str, str]:
    governance = reader.pubkey()
    reader.skip(PUBKEY_LEN)  # governing_token_mint
    state = _read_state(reader)
    reader.skip(PUBKEY_LEN)  # token_owner_record
    reader.skip(2)  # signatories_count, signatories_signed_off_count
    _skip_vote_type(reader)
    _skip_option_entries(reader)
    reader.option(reader.u64)  # deny_vote_weight
    reader.u8()  # reserved1
    reader.option(reader.u64)  # abstain_vote_weight
    reader.option(reader.i64)  # start_voting_at
    reader.i64()  # draft_at
    reader.option(reader.i64)  # signing_off_at
    reader.option(reader.i64)  # voting_at
    reader.option(reader.u64)  # voting_at_slot
    voting_completed_at = reader.option(reader.i64)
    reader.option(reader.i64)  # executing_at
    reader.option(reader.i64)  # closed_at
    reader.u8()  # execution_flags
    reader.option(reader.u64)  # max_vote_weight
    reader.option(reader.u32)  # max_voting_time
    if reader.u8():
        _skip_vote_threshold(reader)
    reader.skip(64)  # reserved
    name = reader.string()
    description_link = reader.string()
    return governance, state, voting_completed_at, name, description_link


def _decode_proposal_v1(reader: _Reader) -> tuple[str, ProposalState, int | None, str, str]:
    governance = reader.pubkey()
    reader.skip(PUBKEY_LEN)  # governing_token_mint
    state = _read_state(reader)
    reader.skip(PUBKEY_LEN)  # token_owner_record
    reader.skip(2)  # signatories_count, signatories_signed_off_count
    reader.skip(16)  # yes_votes_count, no_votes_count
    reader.skip(6)  # instructions executed / count / next index
    reader.i64()  # draft_at
    reader.option(reader.i64)  # signing_off_at
    reader.option(reader.i64)  # voting_at
    reader.option(reader.u64)  # voting_at_slot
    voting_completed_at = reader.option(reader.i64)
    reader.option(reader.i64)  # executing_at
    reader.option(reader.i64)  # closed_at
    reader.u8()  # execution_flags
    reader.option(reader.u64)  # max_vote_weight
    if reader.u8():
        reader.skip(2)  # vote_threshold_percentage: tag + u8
    name = reader.string()
    description_link = reader.string()
    return governance, state, voting_completed_at, name, description_link


def decode_proposal(pubkey: str, data: bytes) -> ProposalRecord:
    """Decode a ProposalV1/ProposalV2 account into a ProposalRecord."""
    account_type = read_account_type(data)
    reader = _Reader(data)
    reader.skip(1)

    if account_type == AccountType.PROPOSAL_V2:
        fields = _decode_proposal_v2(reader)
    elif account_type == AccountType.PROPOSAL_V1:
        fields = _decode_proposal_v1(reader)
    else:
        raise AccountDecodeError(f"{pubkey} is a {account_type.name}, not a proposal")

    governance, state, voting_completed_at, name, description_link = fields
    return ProposalRecord(
        id=pubkey,
        governance=governance,
        title=name,
        description=description_link or NO_DESCRIPTION,
        state=state,
        voting_end_time=_timestamp(voting_completed_at),
    )
