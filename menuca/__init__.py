"""Menu.ca admin dashboard and ordering API."""

__version__ = "1.0.0"
