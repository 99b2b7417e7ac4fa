"""Main entry point for the feed enricher package."""

from feed_enricher.cli import cli

if __name__ == "__main__":
    cli()
