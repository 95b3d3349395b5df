"""Utility functions for names, vectors and diagnostics."""
