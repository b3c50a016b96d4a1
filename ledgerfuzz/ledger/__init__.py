"""Ledger access: storage catalog, paged scans, snapshots and test ledgers."""
