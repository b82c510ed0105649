"""Shared infrastructure: database, configuration, logging, metrics, time and statistics helpers."""
