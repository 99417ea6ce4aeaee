"""Tests for the augur command line interface."""
