"""Template rendering behind an engine-agnostic boundary."""
