"""Tests for augur.plugins."""
