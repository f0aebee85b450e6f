"""Property-based tests for formgate validation, step gating and analytics."""
