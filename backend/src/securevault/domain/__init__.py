"""Framework-independent domain logic."""
