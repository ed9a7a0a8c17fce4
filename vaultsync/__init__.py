"""Keep a local vault and an S3-compatible bucket in sync."""

__version__ = "0.1.0"
