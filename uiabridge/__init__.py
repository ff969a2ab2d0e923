"""uiabridge - supervised out-of-process UI automation host."""

__version__ = "0.3.0"
__logo__ = "🪟"
