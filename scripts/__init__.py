"""Operator scripts for the page token service."""
