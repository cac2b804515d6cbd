"""Feed node normalization."""
