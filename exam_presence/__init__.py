"""Real-time presence and live monitoring for exam sessions."""

__version__ = "0.1.0"
