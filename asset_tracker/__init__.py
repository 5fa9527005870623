"""Asset Tracker: lifecycle and inventory management for IT hardware."""

__version__ = "1.0.0"
