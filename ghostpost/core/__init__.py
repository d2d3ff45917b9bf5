"""
Core utilities shared across the Ghost Post API.

This package hosts configuration, logging setup, the error taxonomy,
password/OTP hashing helpers and the in-process rate limiter. Services and
routers depend on these primitives instead of reading os.environ directly.
"""
