"""CLI command groups for Collybrix."""
