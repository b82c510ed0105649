"""Aggregation, rollup, backfill and ingestion services."""
