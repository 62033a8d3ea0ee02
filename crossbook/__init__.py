"""crossbook: cross-border chauffeur booking backend."""

__version__ = "0.1.0"
