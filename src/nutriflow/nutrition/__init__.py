"""Recipe nutrition scaling."""
