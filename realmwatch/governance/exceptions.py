"""Exception hierarchy for the governance data source."""

from __future__ import annotations


class GovernanceError(Exception):
    """Base exception for all upstream governance errors."""


class TransientUpstreamError(GovernanceError):
    """Temporary upstream failure that is worth retrying."""


class RateLimitedError(TransientUpstreamError):
    """The RPC node answered "too many requests"."""


class FatalUpstreamError(GovernanceError):
    """Upstream failure that aborts the current cycle."""


class AccountDecodeError(FatalUpstreamError):
    """Account data did not match the expected SPL Governance layout."""
