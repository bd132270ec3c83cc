"""Command line interface for the serial gauge exporter."""
