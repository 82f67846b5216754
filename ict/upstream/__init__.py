"""Clients for the upstream identity provider."""
