"""Recipe and dietary preference storage."""

__version__ = "1.0.0"
