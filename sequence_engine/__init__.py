"""Spatial outreach sequence engine."""
