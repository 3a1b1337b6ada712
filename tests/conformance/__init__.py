"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the settlement engine.

The tests are organized by invariant:
1. test_antisymmetry.py - debt(x, y) == -debt(y, x), additivity, no-op queries
2. test_split_partition.py - splits tile the window with exact owner sets
3. test_proration.py - bounded rounding error of period bills

These tests use hypothesis for property-based testing.
"""
