"""Authit - Kanidm administration and self-service provisioning."""

__version__ = "0.1.0"
