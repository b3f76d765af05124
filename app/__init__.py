"""Session gateway application package."""
