from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from dotenv import load_dotenv

from browserfetch.config import FetcherConfig
from browserfetch.errors import FetchError
from browserfetch.fetcher import Fetcher
from browserfetch.magic import resolve_magic_vars
from browserfetch.models import FetchRequest, FetchResponse

EXIT_OK = 0
EXIT_DEGRADED = 1
EXIT_ERROR = 2

app = typer.Typer(add_completion=False, help="Browser-like HTTP fetch CLI")


def _parse_headers(values: list[str]) -> dict[str, str | list[str]]:
    headers: dict[str, str | list[str]] = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected NAME:VALUE, got {item!r}", param_hint="--header")
        key = name.strip().lower()
        if key in headers:
            existing = headers[key]
            headers[key] = [*existing, value.strip()] if isinstance(existing, list) else [existing, value.strip()]
        else:
            headers[key] = value.strip()
    return headers


def _parse_data(value: str | None) -> object:
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return value
    return parsed if isinstance(parsed, (dict, list)) else value


def _echo_body(response: FetchResponse, output: Path | None) -> None:
    if output is not None:
        if response.type == "buffer":
            output.write_bytes(response.data)
        elif response.type == "json":
            output.write_text(json.dumps(response.data, ensure_ascii=False, indent=2), encoding="utf-8")
        else:
            output.write_text(response.data, encoding="utf-8")
        typer.echo(f"saved: {output}", err=True)
        return

    if response.type == "json":
        typer.echo(json.dumps(response.data, ensure_ascii=False, indent=2))
    elif response.type == "text":
        typer.echo(response.data)
    else:
        typer.echo(f"<{len(response.data)} bytes of binary data, use --output to save>")


async def _run(config: FetcherConfig, request: FetchRequest) -> FetchResponse:
    async with Fetcher(config) as fetcher:
        return await fetcher.fetch(request)


@app.command()
def get(
    url: str = typer.Argument(..., help="URL to fetch. Supports {ts}, {ms}, {date}, {date:FMT}, {rand} with --magic"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    header: list[str] = typer.Option([], "--header", "-H", help="Request header NAME:VALUE (repeatable)"),
    cookie: list[str] = typer.Option([], "--cookie", "-b", help="Raw cookie string (repeatable)"),
    data: str | None = typer.Option(None, "--data", "-d", help="Body; JSON objects are encoded per method"),
    retries: int = typer.Option(0, "--retries", min=0, help="Extra attempts for retryable failures"),
    timeout: float | None = typer.Option(None, "--timeout", help="Per-attempt timeout in seconds"),
    response_type: str | None = typer.Option(None, "--type", help="Force text, json or buffer"),
    charset: str | None = typer.Option(None, "--charset", help="Force the response charset"),
    proxy: str | None = typer.Option(None, "--proxy", help="Proxy, e.g. http://127.0.0.1:3128"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the body to this file"),
    magic: bool = typer.Option(True, "--magic/--no-magic", help="Resolve magic variables"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log attempts and retries"),
) -> None:
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if response_type not in (None, "text", "json", "buffer"):
        raise typer.BadParameter("must be one of text, json, buffer", param_hint="--type")

    config = FetcherConfig.from_env()
    config.magic_vars = magic

    request = FetchRequest(
        url=url,
        method=method,
        headers=_parse_headers(header),
        cookies=cookie,
        data=_parse_data(data),
        timeout=timeout,
        retries=retries,
        response_type=response_type,
        response_charset=charset,
        proxy=proxy,
    )

    try:
        response = asyncio.run(_run(config, request))
    except FetchError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_ERROR)

    typer.echo(f"{response.status} {response.status_text} {response.url} [{response.type}]", err=True)
    _echo_body(response, output)
    raise typer.Exit(code=EXIT_OK if response.ok else EXIT_DEGRADED)


@app.command()
def resolve(template: str = typer.Argument(..., help="Text with magic variables")) -> None:
    typer.echo(resolve_magic_vars(template))


if __name__ == "__main__":
    app()
