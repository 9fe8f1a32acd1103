"""calmguard — calm-period scheduling and reversible page adaptation."""

__version__ = "0.1.0"
