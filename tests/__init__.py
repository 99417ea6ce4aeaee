"""Augur test suite."""
