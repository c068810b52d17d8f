"""Command line interface for openlogin."""
