"""Cross-chain bridge quote ranking and transaction status tracking."""

__version__ = "0.1.0"
