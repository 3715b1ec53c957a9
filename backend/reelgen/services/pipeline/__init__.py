"""Media pipeline."""
