"""Mood and journal data access with caching and derived analytics."""
