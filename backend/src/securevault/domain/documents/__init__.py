"""Document ingestion rules: category whitelists, size limits, content verification."""
