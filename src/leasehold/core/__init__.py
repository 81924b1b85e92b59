"""Lease record types and name validation."""
