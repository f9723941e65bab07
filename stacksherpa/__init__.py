"""stacksherpa: API provider recommendations from your catalog, profile and past decisions."""

__version__ = "1.0.0"
