"""Exceptions shared across the application."""
