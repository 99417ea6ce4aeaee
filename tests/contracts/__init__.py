"""Tests for augur.contracts."""
