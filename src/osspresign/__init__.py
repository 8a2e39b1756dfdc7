"""
osspresign: OSS4-HMAC-SHA256 presigned URL generation.

Signs time-limited URLs for objects in OSS-style object storage and exposes
the signer through a small HTTP service and a command line tool.
"""

__version__ = "1.0.0"
