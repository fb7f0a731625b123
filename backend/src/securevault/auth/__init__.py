"""Authentication: credential store, one-time codes, session tokens, role guard."""
