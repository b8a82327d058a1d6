"""Organizations and membership."""
