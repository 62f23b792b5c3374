"""ai-coder - local AI coding from the terminal."""

__version__ = "0.1.0"
