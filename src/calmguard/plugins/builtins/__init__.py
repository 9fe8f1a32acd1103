"""Plugins shipped with calmguard."""
