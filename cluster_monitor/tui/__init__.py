"""TUI module for cluster monitoring."""

from cluster_monitor.tui.app import ClusterTUI, JobFinished
from cluster_monitor.tui.screens import InstanceDetailScreen, LoginScreen

__all__ = ["ClusterTUI", "JobFinished", "InstanceDetailScreen", "LoginScreen"]
