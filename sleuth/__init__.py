"""Pool Sleuth - forensic analysis of DEX swap batches."""

__version__ = "0.1.0"
