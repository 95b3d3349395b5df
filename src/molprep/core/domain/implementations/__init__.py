"""Concrete geometry implementations."""
