"""Click CLI for running the webhook server and poking the completion backend."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

from src.completion.client import CompletionClient, CompletionError
from src.config import CompletionConfig
from src.models import ChatTurn, ContentPart, ImageURL, Role


def _completion_client() -> CompletionClient:
    try:
        return CompletionClient(CompletionConfig.from_env())
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("--log-level", default="INFO", show_default=True, help="Python logging level.")
def cli(log_level: str) -> None:
    """LINE "Ai " command bot."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=3000, show_default=True, type=int)
def serve(host: str, port: int) -> None:
    """Run the webhook server."""
    import uvicorn

    uvicorn.run("src.server.app:create_app_from_env", factory=True, host=host, port=port)


@cli.command()
@click.argument("prompt")
@click.option("--image-url", default=None, help="Attach an image; routes to the vision model.")
def ask(prompt: str, image_url: str | None) -> None:
    """Send PROMPT as a single user turn and print the completion."""
    client = _completion_client()
    content: str | list[ContentPart] = prompt
    if image_url:
        content = [
            ContentPart(type="text", text=prompt),
            ContentPart(type="image_url", image_url=ImageURL(url=image_url)),
        ]
    history = [ChatTurn(role=Role.USER, content=content)]
    try:
        click.echo(asyncio.run(client.complete(history)))
    except CompletionError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command()
@click.argument("prompt")
@click.option("--size", default=None, help="Image size, e.g. 1024x1024.")
def imagine(prompt: str, size: str | None) -> None:
    """Generate an image from PROMPT and print its URL."""
    client = _completion_client()
    try:
        urls = asyncio.run(client.create_image(prompt, size=size))
    except CompletionError as exc:
        raise click.ClickException(str(exc)) from exc
    for url in urls:
        click.echo(url)


@cli.command()
@click.argument("audio_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def transcribe(audio_file: Path) -> None:
    """Transcribe AUDIO_FILE and print the text."""
    client = _completion_client()
    try:
        text = asyncio.run(client.transcribe(audio_file.read_bytes(), audio_file.name))
    except CompletionError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(text)


if __name__ == "__main__":
    cli()
