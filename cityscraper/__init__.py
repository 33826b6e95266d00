"""Google Maps establishment harvester with an interactive run console."""

__version__ = "0.3.0"
