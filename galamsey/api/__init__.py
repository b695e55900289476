"""GalamseyWatch REST API."""
