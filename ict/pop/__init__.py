"""Proof-of-possession verification and bound token issuance."""
