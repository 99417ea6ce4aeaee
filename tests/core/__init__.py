"""Tests for augur.core."""
