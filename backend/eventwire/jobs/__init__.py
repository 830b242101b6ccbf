"""Periodic enrichment jobs: sync, news discovery, thumbnail backfill."""
