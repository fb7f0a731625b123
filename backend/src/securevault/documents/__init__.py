"""Document store and share engine."""
