"""Utility modules for sqlmapper."""
