"""Keyboards package."""
