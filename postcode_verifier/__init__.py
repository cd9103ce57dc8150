"""
Postcode Verifier Service
=========================

A small address verification API built with:
- FastAPI for the HTTP layer
- JWT sessions (7 day lifetime) backed by bcrypt password hashes
- AusPost postcode search for suburb/postcode/state cross-checks
- PostgreSQL as an append-only store of every verification attempt
"""

__version__ = "1.0.0"
__author__ = "Postcode Verifier Team"
