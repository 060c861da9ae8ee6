#!/usr/bin/env python3
"""
Command line entry point for virgo.

Commands:
  fetch     Fetch a list of URLs and print one JSON object per result
  config    Show the effective options

Common options:
  --config PATH       Path to a YAML/JSON options file (default: configs/default.yaml if present)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stderr only when omitted)
  --log-format FORMAT Log format (e.g. "%(asctime)s %(levelname)s %(message)s")

fetch options:
  --input FILE        Read URLs from FILE ("-" for stdin), one per line
  --method, --header, --data, --user-agent, --cookie,
  --timeout MS, --concurrency N, --follow, --proxy URL
  --json PATH         Save a JSON report instead of printing JSON lines
  --pretty            Indent the JSON report
  --include-body      Add decoded bodies to the output

Additionally:
  --version, -v       Show the virgo version

Example:
  virgo fetch -n 16 -H "Accept: text/html" -i urls.txt --json run.json --pretty
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import click
from pydantic import ValidationError

from virgo import __version__
from virgo.config import FetchOptions, load_options
from virgo.fetcher.dispatcher import Dispatcher
from virgo.fetcher.models import Result
from virgo.fetcher.transport import AiohttpTransport
from virgo.logger import DEFAULT_FORMAT, configure
from virgo.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


async def run_fetch(
    options: FetchOptions,
    urls: Sequence[str],
    proxy: Optional[str] = None,
    on_result: Optional[Callable[[Result], None]] = None,
) -> List[Result]:
    """Fetch *urls* with *options*, calling *on_result* as results arrive."""
    results: List[Result] = []
    async with AiohttpTransport(proxy=proxy) as transport:
        dispatcher = Dispatcher(options, transport=transport)
        async for result in dispatcher.stream(urls):
            results.append(result)
            if on_result is not None:
                on_result(result)
        await dispatcher.close()
    return results


def _parse_headers(ctx, param, values) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected 'Name: value', got {raw!r}")
        headers[name.strip()] = value.strip()
    return headers


def _read_urls(urls: Sequence[str], input_file) -> List[str]:
    collected = list(urls)
    if input_file is not None:
        for line in input_file:
            line = line.strip()
            if line and not line.startswith("#"):
                collected.append(line)
    return collected


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="virgo, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a YAML/JSON options file.",
)
@click.option(
    "--log-level", "log_level",
    default="WARNING", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Logging level",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Log file (stderr only when omitted)",
)
@click.option(
    "--log-format", "log_format",
    default=DEFAULT_FORMAT,
    show_default=True,
    help="Format string for log records",
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """virgo: bulk HTTP fetcher."""
    configure(level=log_level, log_file=log_file, log_format=log_format)
    try:
        options = load_options(config_path)
    except Exception as e:
        print_error(f"Failed to load options: {e}")
    ctx.ensure_object(dict)
    ctx.obj["options"] = options


@cli.command("fetch", context_settings=CONTEXT_SETTINGS)
@click.argument("urls", nargs=-1)
@click.option("--input", "-i", "input_file", type=click.File("r", encoding="utf-8"), default=None,
              help='File with one URL per line ("-" for stdin)')
@click.option("--method", "-X", default=None, help="HTTP method")
@click.option("--header", "-H", "headers", multiple=True, callback=_parse_headers,
              help='Extra header "Name: value", repeatable')
@click.option("--data", "-d", default=None, help="Request body")
@click.option("--user-agent", "-A", default=None, help="User-Agent header")
@click.option("--cookie", "-b", default=None, help="Cookie header")
@click.option("--timeout", "timeout_ms", type=int, default=None, help="Per-request timeout (ms)")
@click.option("--concurrency", "-n", type=int, default=None, help="Number of concurrent workers")
@click.option("--follow/--no-follow", "-L", "follow_redirects", default=None,
              help="Follow HTTP redirects")
@click.option("--proxy", default=None, help="Proxy URL for every request")
@click.option("--json", "-j", "json_output", default=None,
              type=click.Path(writable=True, dir_okay=False, path_type=Path),
              help="Save a JSON report to a file")
@click.option("--pretty", is_flag=True, help="Indent the JSON report (2 spaces)")
@click.option("--include-body", is_flag=True, help="Add decoded bodies to the output")
@click.pass_context
def fetch(ctx, urls, input_file, method, headers, data, user_agent, cookie, timeout_ms,
          concurrency, follow_redirects, proxy, json_output, pretty, include_body):
    """Fetch URLs with bounded concurrency."""
    base: FetchOptions = ctx.obj["options"]
    overrides = {
        "method": method,
        "body": data.encode("utf-8") if data is not None else None,
        "user_agent": user_agent,
        "cookie": cookie,
        "timeout_ms": timeout_ms,
        "concurrency": concurrency,
        "follow_redirects": follow_redirects,
    }
    merged = base.model_dump()
    merged.update({k: v for k, v in overrides.items() if v is not None})
    if headers:
        merged["headers"] = {**base.headers, **headers}
    try:
        options = FetchOptions(**merged)
    except ValidationError as e:
        print_error(f"Invalid options: {e}")

    targets = _read_urls(urls, input_file)
    if not targets:
        print_error("No URLs given")

    def echo_line(result: Result) -> None:
        click.echo(json.dumps(result.to_dict(include_body=include_body), ensure_ascii=False))

    results = asyncio.run(
        run_fetch(options, targets, proxy=proxy, on_result=None if json_output else echo_line)
    )

    if json_output:
        try:
            saved = render_json(results, json_output, pretty=pretty, include_body=include_body)
            click.echo(f"JSON report: {saved}")
        except OSError as e:
            print_error(f"Failed to save JSON report: {e}")


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective options as JSON."""
    options = ctx.obj["options"]
    click.echo(options.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
