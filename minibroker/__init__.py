"""Building blocks of a small message broker: collections, plain-text reports,
stylesheet serving, an HTTP keep-alive endpoint and a versioned data layer."""

__version__ = "0.1.0"