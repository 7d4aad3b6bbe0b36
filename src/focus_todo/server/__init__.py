"""HTTP resource server."""
