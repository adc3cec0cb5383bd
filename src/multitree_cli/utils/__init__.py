"""Shared helpers for multitree."""
