"""Reporting: read-only views over orders."""
