"""Event ticketing core."""
