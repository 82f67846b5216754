"""Key material resolution, key loading and JWT signing."""
