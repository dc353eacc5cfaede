"""Clinic scheduling API."""
