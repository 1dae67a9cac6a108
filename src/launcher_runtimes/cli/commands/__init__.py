"""CLI command modules for launcher-runtimes."""
