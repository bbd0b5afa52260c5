class HarnessError(Exception):
    """A completion case could not be loaded."""
