"""daybook - a day-trading profit/loss journal."""

__version__ = "0.1.0"
