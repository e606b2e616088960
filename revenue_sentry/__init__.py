"""Revenue Sentry — analytics and reasoning core for a single hospitality property."""

__version__ = "0.1.0"
