"""Mapper interfaces used by discovery tests."""
