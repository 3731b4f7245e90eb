"""Hudson property lifecycle and collaborative planning core."""

__version__ = "1.0.0"
