"""Care circle workflow API."""
