"""luaplug CLI — ``luaplug run`` / ``luaplug capabilities``."""

from luaplug.cli.app import app

__all__ = ["app"]
