"""Golf Course - a code golf contest backend."""

__version__ = "0.1.0"
