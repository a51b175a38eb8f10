"""Pure rules of the discipline engine. No I/O lives in this package."""
