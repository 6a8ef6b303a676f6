"""IO layer: connections to live databases."""
