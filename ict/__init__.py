"""OIDC Identity Certification Token service."""
