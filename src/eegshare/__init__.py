"""EEGShare: circular buffer apportioning across administrative boundaries."""

__version__ = "0.1.0"
