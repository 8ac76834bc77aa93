"""ZenLedger: family allowance ledger with local and remote storage."""

__version__ = "0.1.0"
