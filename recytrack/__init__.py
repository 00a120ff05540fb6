"""RecyTrack: material lifecycle and batch allocation ledger."""

__version__ = "1.0.0"
