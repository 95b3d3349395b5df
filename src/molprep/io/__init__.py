"""Readers and writers for topology and PDB files."""
