"""Command-line tools for dcsclient."""
