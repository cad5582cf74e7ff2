"""Shared helpers for Task Phrase."""
