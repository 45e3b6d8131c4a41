"""Deal catalog backend: batch import, faceted deal queries and abuse guards."""

__version__ = "0.1.0"
