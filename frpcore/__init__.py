"""Configuration, control messages, authentication settings and traffic counting for a fast reverse proxy."""

__version__ = "0.1.0"