"""Identity and session services."""
