"""Shared ledger infrastructure: config, errors, fixed-point math, logging, metrics, storage."""
