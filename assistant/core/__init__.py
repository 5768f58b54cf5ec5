"""Settings, logging, error handling and metrics for the API."""
