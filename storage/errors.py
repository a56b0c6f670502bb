class StoreError(RuntimeError):
    """Raised when a repository write does not produce the expected row."""
