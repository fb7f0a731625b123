"""Blob storage adapters (local filesystem, S3-compatible)."""
