"""Underwriting decision engine for commercial equipment finance."""

__version__ = "1.0.0"
