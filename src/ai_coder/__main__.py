"""Entry point for ``python -m ai_coder``."""

from ai_coder.cli import app

if __name__ == "__main__":
    app()
