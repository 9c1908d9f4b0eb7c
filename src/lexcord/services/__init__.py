"""Process-wide services: the staff operation queue and its interceptors."""
