"""Transit schedule registry."""
