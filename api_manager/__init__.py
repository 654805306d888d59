"""API Manager: provider registry and dynamic API proxy."""

__version__ = "0.1.0"
