"""Doctor and hospital revenue split service."""
