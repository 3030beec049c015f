"""Meeting audio capture with per-speaker attribution."""

__version__ = "0.1.0"
