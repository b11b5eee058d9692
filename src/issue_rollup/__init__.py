"""MCP server rendering rollups of GitHub issues."""

import asyncio
import logging
import os

import click
from dotenv import load_dotenv

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@click.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    default="stdio",
    help="MCP transport type",
)
@click.option("--port", default=8000, help="Port for HTTP transports")
@click.option("--host", default="127.0.0.1", help="Host for HTTP transports")
@click.option("--github-url", envvar="GITHUB_API_URL", help="GitHub API URL")
@click.option("--github-token", envvar="GITHUB_TOKEN", help="GitHub personal access token")
@click.option(
    "--timeframe",
    type=click.Choice(["all-time", "today", "last-week", "last-month", "last-year"]),
    help="Only comments posted within this timeframe count as updates",
)
@click.option("--emoji-override", help="Let status emoji in updates override field values")
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
)
def main(
    transport: str,
    port: int,
    host: str,
    github_url: str | None,
    github_token: str | None,
    timeframe: str | None,
    emoji_override: str | None,
    log_level: str,
) -> None:
    """Run the Issue Rollup MCP server."""
    load_dotenv()
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)

    if github_url:
        os.environ["GITHUB_API_URL"] = github_url
    if github_token:
        os.environ["GITHUB_TOKEN"] = github_token
    if timeframe:
        os.environ["UPDATE_TIMEFRAME"] = timeframe
    if emoji_override:
        os.environ["EMOJI_OVERRIDE"] = emoji_override

    from .servers.rollup import mcp

    run_kwargs: dict = {"transport": transport}
    if transport != "stdio":
        run_kwargs["host"] = host
        run_kwargs["port"] = port

    asyncio.run(mcp.run_async(show_banner=False, **run_kwargs))


if __name__ == "__main__":
    main()
