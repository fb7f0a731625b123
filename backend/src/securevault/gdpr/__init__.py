"""Data-subject rights: export, erasure, rectification, consent."""
