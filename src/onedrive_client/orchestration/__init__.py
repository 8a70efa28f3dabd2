"""Caller-facing session wiring."""
