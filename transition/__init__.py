"""Occupancy transition engine."""
