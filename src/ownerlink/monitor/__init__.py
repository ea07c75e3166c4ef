"""Live site health checks for the rule set."""

from ownerlink.monitor.models import MonitorReport, SiteCheck

__all__ = ["MonitorReport", "SiteCheck"]
