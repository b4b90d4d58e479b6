"""Authentication primitives.

Learn: Two building blocks, both reused across the services:
1. PasswordHasher → bcrypt hashing for passwords AND opaque identifiers
2. TokenSigner → HS256 JWTs with independent access/refresh secrets

The request-side guard (public vs protected routes) lives in
warden.auth.dependencies.
"""
