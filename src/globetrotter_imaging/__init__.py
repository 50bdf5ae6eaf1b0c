"""GlobeTrotter imaging: validation, metadata and variant generation for uploads."""

__version__ = "0.1.0"
