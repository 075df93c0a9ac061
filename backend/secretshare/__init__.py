"""Zero-knowledge secret sharing backend."""

__version__ = "0.1.0"
