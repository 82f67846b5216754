"""Nonce ledger persistence."""
