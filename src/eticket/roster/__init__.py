"""Owner and staff authorization roster."""
