"""
Entry point for ``python -m flightgrid``.
"""

from .cli.app import app

if __name__ == "__main__":
    app()
