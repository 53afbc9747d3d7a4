"""Kanidm REST API client."""

from .client import KanidmClient, get_kanidm_client
from .models import Group, Person

__all__ = ["Group", "KanidmClient", "Person", "get_kanidm_client"]
