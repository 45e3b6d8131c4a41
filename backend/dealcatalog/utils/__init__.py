"""Normalization helpers for scraped listings."""
