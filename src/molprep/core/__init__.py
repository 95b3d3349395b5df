"""Core domain models, geometry and services of the hydrogen builder."""
