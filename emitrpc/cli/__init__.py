"""Command-line interface for emitrpc."""
