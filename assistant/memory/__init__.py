"""Ongoing-action storage."""
