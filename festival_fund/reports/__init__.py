"""Read-only reporting: festival reconciliation and the dashboard."""

from festival_fund.reports.dashboard import DashboardAggregator
from festival_fund.reports.festival import ReportEngine

__all__ = ["DashboardAggregator", "ReportEngine"]
