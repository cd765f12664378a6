"""Dream journal: structured dream reports and follow-up chat."""

__version__ = "1.0.0"
