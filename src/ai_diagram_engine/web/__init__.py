"""HTTP surface (requires the ``web`` extra)."""
