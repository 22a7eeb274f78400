"""Listing persistence and favorites collaborators."""
