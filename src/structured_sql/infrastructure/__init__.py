"""Infrastructure layer: SQL composition independent of any live connection."""
