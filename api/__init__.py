"""Referral Capture Platform API."""

__version__ = "0.1.0"
