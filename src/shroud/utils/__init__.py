"""Utility helpers shared across the shroud package."""
