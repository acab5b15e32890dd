"""flashsource - resolve a user-picked image source into a normalized descriptor."""

__version__ = "0.3.0"
