"""Eclipse roster bot: a single live roster message managed by chat commands."""

__version__ = "1.0.0"
