"""Policy Pulse - medication coverage change tracking for insurance policies."""

__version__ = "0.1.0"
