"""TaxBridge offline-first invoice sync."""

__version__ = "1.0.0"
