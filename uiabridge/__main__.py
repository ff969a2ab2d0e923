"""Entry point for running uiabridge as a module: python -m uiabridge"""

from uiabridge.cli.commands import app

if __name__ == "__main__":
    app()
