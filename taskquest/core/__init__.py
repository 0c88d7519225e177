"""Core infrastructure: settings, logging, errors, storage."""
