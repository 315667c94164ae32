"""Command-line tools for payledger."""
