"""HTTP API package for the Tubely backend."""
