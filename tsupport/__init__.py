"""Realtime customer/agent support-chat engine."""

__version__ = "0.1.0"
