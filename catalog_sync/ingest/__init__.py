"""Feed acquisition and parsing."""
