"""Tests for augur.engine."""
