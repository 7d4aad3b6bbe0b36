"""Backend-for-frontend proxy in front of the resource server."""
