"""Pathway Tracker API package."""
