"""Secure document vault: OTP login, verified uploads, revocable shares, audit trail, GDPR rights."""

__version__ = "0.1.0"
