"""Friday sermon catalog with on-demand generation."""

__version__ = "0.1.0"
