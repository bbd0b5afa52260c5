"""Entry point for ``python -m helix_assist``."""

from .cli.main import app

if __name__ == "__main__":
    app()
