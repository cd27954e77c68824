"""Chat client for a map assistant served through an Assistants API relay."""

__version__ = "0.1.0"
