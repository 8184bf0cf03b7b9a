"""Command-line entry points for feedrelay."""
