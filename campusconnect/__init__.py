"""CampusConnect backend: clearance workflow and campus messaging."""

__version__ = "0.1.0"
