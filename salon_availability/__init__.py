"""Salon appointment availability and booking-consistency engine."""

__version__ = "1.0.0"
