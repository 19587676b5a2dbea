"""Marketplace identity reconciliation and vendor application lifecycle."""
