"""Command line interface for the feed enricher."""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple

import click
import structlog
from dotenv import load_dotenv

from feed_enricher.cache.persistent import PersistentCache
from feed_enricher.config.settings import Settings
from feed_enricher.core.processor import FeedEnricher
from feed_enricher.errors import BaseError
from feed_enricher.fetch.client import FetchConfig, HttpFetcher
from feed_enricher.models import Feed
from feed_enricher.output.rss import render_rss
from feed_enricher.sources.reddit import RedditSource
from feed_enricher.sources.rss import RssSource

logger = structlog.get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structured logging for command line runs."""
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        logger_factory=structlog.PrintLoggerFactory(file=click.get_text_stream("stderr")),
    )


def split_feed_spec(spec: str, default_tag: str = "default") -> Tuple[str, str]:
    """Split ``name[:tag]`` into its name and dedup tag."""
    name, _, tag = spec.partition(":")
    return name, tag or default_tag


async def enrich_feed(
    settings: Settings, load_feed: Callable[[HttpFetcher], Awaitable[Feed]], tag: str
) -> str:
    """Fetch a feed, enrich it and render it as RSS."""
    fetch_config = FetchConfig(
        timeout=settings.fetch_timeout,
        max_concurrency=settings.max_concurrency,
        user_agent=settings.user_agent,
    )
    async with HttpFetcher(fetch_config) as fetcher:
        feed = await load_feed(fetcher)
        items = await FeedEnricher(settings, fetcher).run(feed, tag)
    return render_rss(feed, items)


def _settings(ctx: click.Context, **overrides) -> Settings:
    settings: Settings = ctx.obj["settings"]
    return replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def _run(settings: Settings, load_feed, tag: str, output: Optional[str]) -> None:
    try:
        document = asyncio.run(enrich_feed(settings, load_feed, tag))
    except BaseError as e:
        logger.error("run_failed", error=e.message, category=e.category.value, **e.details)
        raise click.ClickException(e.message) from e

    if output:
        Path(output).write_text(document, encoding="utf-8")
        logger.info("rss_written", path=output)
    else:
        click.echo(document)


run_options = [
    click.option("--state-dir", type=click.Path(file_okay=False), help="Directory for cache snapshots"),
    click.option("--max-width", type=int, help="Width hint for embeds"),
    click.option("--timeout", type=float, help="Per-fetch timeout in seconds"),
    click.option("--embedly-key", envvar="EMBEDLY_API_KEY", help="embed.ly API key"),
    click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write RSS here instead of stdout"),
]


def with_run_options(f):
    for option in reversed(run_options):
        f = option(f)
    return f


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging level",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
@click.pass_context
def cli(ctx: click.Context, log_level: str, json_logs: bool) -> None:
    """Feed enricher: dedup feeds and embed the media they link to."""
    load_dotenv()
    configure_logging(log_level, json_logs)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("settings", Settings.from_env())


@cli.command()
@click.argument("feed_spec")
@with_run_options
@click.pass_context
def reddit(ctx, feed_spec, state_dir, max_width, timeout, embedly_key, output) -> None:
    """Enrich a subreddit given as SUBREDDIT[:TAG]."""
    subreddit, tag = split_feed_spec(feed_spec)
    settings = _settings(
        ctx, state_dir=state_dir, max_width=max_width, fetch_timeout=timeout, embedly_api_key=embedly_key
    )

    async def load_feed(fetcher):
        return await RedditSource(fetcher).fetch_feed(subreddit)

    _run(settings, load_feed, tag, output)


@cli.command()
@click.argument("url")
@click.option("--tag", default="default", show_default=True, help="Dedup tag for this consumer")
@with_run_options
@click.pass_context
def rss(ctx, url, tag, state_dir, max_width, timeout, embedly_key, output) -> None:
    """Enrich an RSS or Atom feed."""
    settings = _settings(
        ctx, state_dir=state_dir, max_width=max_width, fetch_timeout=timeout, embedly_api_key=embedly_key
    )

    async def load_feed(fetcher):
        return await RssSource(fetcher).fetch_feed(url)

    _run(settings, load_feed, tag, output)


@cli.command()
@click.argument("snapshot", type=click.Path(dir_okay=False))
@click.option("--capacity", type=int, default=10 * 1024 * 1024, show_default=True)
def inspect(snapshot: str, capacity: int) -> None:
    """Print a snapshot's entries, least recently used first."""
    try:
        cache = PersistentCache.load(snapshot, capacity)
    except BaseError as e:
        raise click.ClickException(e.message) from e
    for key, value in cache.items():
        click.echo(f"{key}\t{value}")
    click.echo(f"# {len(cache)} entries, {cache.size()} bytes", err=True)


if __name__ == "__main__":
    cli()
