"""
Festival Fund

Contribution ledger and reconciliation reports for a village festival
committee.
"""

__version__ = "0.1.0"
