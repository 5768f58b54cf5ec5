"""Message to candidate extraction."""
