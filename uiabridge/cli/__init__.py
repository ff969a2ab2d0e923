"""Command-line interface for uiabridge."""
