"""Media Ratings Platform (MRP) backend."""

__version__ = "1.0.0"
