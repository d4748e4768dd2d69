"""Command line interface for the key/value backend."""
