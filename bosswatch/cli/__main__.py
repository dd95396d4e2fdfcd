"""CLI entry point.

Allows running the CLI as a module: python -m bosswatch.cli
"""

from bosswatch.cli import app

if __name__ == "__main__":
    app()
