"""ownerlink command-line interface."""
