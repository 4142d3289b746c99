"""Window discovery, classification and focus bookkeeping."""
