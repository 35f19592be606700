"""Plugins shipped with csparse."""
