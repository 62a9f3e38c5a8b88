"""Command-line interface for ctxgit."""
