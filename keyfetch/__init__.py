"""keyfetch: read a single document by id from a key-value store and route it."""

__version__ = "0.1.0"
