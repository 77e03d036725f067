"""Payments app package: client for the external payment provider."""
