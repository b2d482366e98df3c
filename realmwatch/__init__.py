"""realmwatch — SPL Governance proposal monitor with Discord notifications."""

__version__ = "0.1.0"
