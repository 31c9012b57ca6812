"""Command line interface for catchup-feed."""
