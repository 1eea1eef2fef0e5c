"""Filterwave: two-tier content moderation with an auditable decision log."""

__version__ = "2.0.0"
