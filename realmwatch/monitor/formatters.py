"""Pure functions that turn proposals and cycle outcomes into messages."""

from __future__ import annotations

from realmwatch.core.types import ProposalRecord
from realmwatch.monitor.types import AlertMessage

PROPOSAL_COLOR = 5814783

NO_PROPOSALS_TEXT = "No proposals found during this check."
CYCLE_FAILED_TEXT = "An error occurred while processing proposals. Check the logs for details."


def format_proposal(proposal: ProposalRecord) -> AlertMessage:
    """Convert a newly seen proposal to an AlertMessage."""
    return AlertMessage(
        title=proposal.title,
        body=proposal.description,
        fields={
            "State": proposal.state.value,
            "Voting Ends": proposal.voting_end_label,
        },
        color=PROPOSAL_COLOR,
        source_event_type="NEW_PROPOSAL",
        raw={"id": proposal.id, "governance": proposal.governance},
    )


def format_new_proposals_summary(count: int) -> str:
    return f"Detected {count} new proposals."
