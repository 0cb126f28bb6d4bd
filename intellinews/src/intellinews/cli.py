import sys
import json
import click
import logging
import threading
from datetime import datetime
from .errors import format_error
from .logging import configure_logging
from .config import load_env_file, load_config
from .engine import NewsEngine
from .models.news import SearchOptions, ensure_utc
from .providers.tavily import TavilySearchProvider
from .store.sqlite import SQLiteKnowledgeStore
from .export import md_export

# Configure logging at module level
configure_logging()
load_env_file()
logger = logging.getLogger(__name__)


def _build_engine(topics_path: str) -> NewsEngine:
    config = load_config(topics_path=topics_path)
    store = SQLiteKnowledgeStore(db_path=config.db_path)
    return NewsEngine(config, store, TavilySearchProvider())


def _parse_date_option(ctx, param, value):
    if not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        raise click.BadParameter("date must be ISO format (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS).")


def _summary_payload(summary) -> dict:
    return {
        "by_topic": {t: [e.model_dump(mode="json") for e in items] for t, items in summary.by_topic.items()},
        "added": len(summary.all_items),
    }


@click.group()
@click.option("--topics-file", default="topics.yaml", show_default=True, help="Optional YAML topic overrides")
@click.option("--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, topics_file, verbose):
    """intellinews: topical news ingestion and retrieval."""
    if verbose:
        configure_logging(logging.DEBUG)
    ctx.ensure_object(dict)
    ctx.obj["topics_file"] = topics_file


@cli.command()
@click.option("--topic", "topics", multiple=True, help="Topic to fetch (repeatable). Defaults to all configured topics.")
@click.pass_context
def fetch(ctx, topics):
    """Fetch the latest news and store new articles."""
    engine = _build_engine(ctx.obj["topics_file"])
    topic_list = [t.strip() for t in topics if t.strip()]
    if topic_list:
        summary = engine.fetch_topics(topic_list)
    else:
        summary = engine.fetch_all()
    _print_json(_summary_payload(summary))


@cli.command()
@click.option("--query", default=None, help="Free-text query")
@click.option("--context", "conversation_context", default=None, help="Conversation context to rank against")
@click.option("--limit", default=None, type=int, help="Max results (default NEWS_SEARCH_LIMIT)")
@click.option("--from", "from_date", default=None, callback=_parse_date_option, help="Earliest publish date (ISO)")
@click.option("--to", "to_date", default=None, callback=_parse_date_option, help="Latest publish date (ISO)")
@click.option("--source", "sources", multiple=True, help="Restrict to source (repeatable)")
@click.option("--topic", "topics", multiple=True, help="Restrict to topic (repeatable)")
@click.option("--markdown", is_flag=True, help="Print Markdown instead of JSON")
@click.pass_context
def search(ctx, query, conversation_context, limit, from_date, to_date, sources, topics, markdown):
    """Search stored news, newest first."""
    if limit is not None and limit < 1:
        raise click.BadParameter("--limit must be >= 1.")
    engine = _build_engine(ctx.obj["topics_file"])
    options = SearchOptions(
        query=query,
        conversation_context=conversation_context,
        limit=limit,
        from_date=from_date,
        to_date=to_date,
        sources=list(sources) or None,
        topics=list(topics) or None,
    )
    results = engine.search(options)
    if markdown:
        heading = f"# News about \"{query}\"" if query else "# Latest News"
        click.echo(md_export.format_entries_md(results, heading=heading))
        return
    _print_json([e.model_dump(mode="json") for e in results])


@cli.command()
@click.option("--days", default=None, type=int, help="Retention window (default NEWS_RETENTION_DAYS)")
@click.pass_context
def purge(ctx, days):
    """Delete news older than the retention window."""
    if days is not None and days < 1:
        raise click.BadParameter("--days must be >= 1.")
    engine = _build_engine(ctx.obj["topics_file"])
    deleted = engine.purge(days)
    _print_json({"deleted": deleted})


@cli.command()
@click.pass_context
def run(ctx):
    """
    Run the scheduler: fetch every topic now, then on its interval,
    and purge once a day. Stops on Ctrl-C.
    """
    engine = _build_engine(ctx.obj["topics_file"])
    summary = engine.start()
    logger.info(f"Initial fetch stored {len(summary.all_items)} items; running until interrupted")
    stop = threading.Event()
    try:
        while not stop.wait(1):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping scheduler")
    finally:
        engine.stop()


@cli.command()
def version():
    """Print version information."""
    _print_json({"version": "0.1.0"})


def _print_json(data):
    """Helper to print standard JSON envelope."""
    payload = {
        "ok": True,
        "data": data,
        "meta": {
            "version": 1
        }
    }
    click.echo(json.dumps(payload, indent=2))


def main():
    """Entry point for the CLI."""
    try:
        cli(standalone_mode=False)
    except Exception as e:
        if isinstance(e, click.exceptions.Exit):
            sys.exit(e.exit_code)
        if isinstance(e, click.exceptions.Abort):
            sys.exit(130)

        print(format_error(e))
        sys.exit(1)

if __name__ == "__main__":
    main()
