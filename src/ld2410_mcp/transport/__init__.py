"""Byte transports for the radar."""
