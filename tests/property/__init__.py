# tests/property/__init__.py
"""Property-based tests for Augur.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- plan graph: ordering determinism, cycle and dangling-reference detection
- templates: purity of property merge and placeholder substitution
"""
