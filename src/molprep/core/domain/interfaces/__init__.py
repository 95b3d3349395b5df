"""Abstract interfaces of the domain layer."""
