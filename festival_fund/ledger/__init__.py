"""Ledger package: the running balance and its transaction log."""

from festival_fund.ledger.account import Ledger
from festival_fund.ledger.recorder import EventRecorder

__all__ = ["EventRecorder", "Ledger"]
