"""Command-line interface for the Flickr album uploader."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from flickr_album_uploader.api_client import FlickrAPIClient
from flickr_album_uploader.exceptions import RemoteQueryError
from flickr_album_uploader.fetcher import HttpFetcher
from flickr_album_uploader.models import PhotoSource, ReconcileOutcome, UploadStatus
from flickr_album_uploader.reconciler import AlbumReconciler, ReconcilerConfig
from flickr_album_uploader.utils import load_sources

app = typer.Typer(
    name="flickr-album-uploader",
    help="Upload photos from URLs into a Flickr album, skipping ones already there",
    add_completion=False,
)
console = Console()


def setup_logging(verbose: bool) -> None:
    """Configure logging with Rich handler.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def print_summary(outcome: ReconcileOutcome) -> None:
    """Print a per-status summary of a reconciliation."""
    console.print("\n[bold]Upload Summary:[/bold]")
    console.print(f"  Album ID: {outcome.album_id or '(not created)'}")
    console.print(f"  Total photos: {len(outcome.results)}")
    console.print(f"  [green]Uploaded: {outcome.uploaded}[/green]")
    console.print(f"  [cyan]Skipped: {outcome.skipped}[/cyan]")
    console.print(f"  [red]Failed: {outcome.failed}[/red]")

    if outcome.warnings:
        console.print("\n[bold yellow]Warnings:[/bold yellow]")
        for result in outcome.warnings:
            console.print(
                f"  - {escape(result.source.url)} ({result.photo_id}): "
                f"{escape(result.warning)}"
            )

    if outcome.failed:
        console.print("\n[bold red]Failed uploads:[/bold red]")
        for result in outcome.results:
            if result.status is UploadStatus.FAILED:
                console.print(
                    f"  - {escape(result.source.url)} ({result.error_kind.value}): "
                    f"{escape(result.error_message)}"
                )


async def async_reconcile(
    album_title: str,
    sources: list[PhotoSource],
    api_client: FlickrAPIClient,
    config: ReconcilerConfig,
) -> int:
    """Async reconcile implementation.

    Args:
        album_title: Title of the target album
        sources: Photo sources to upload
        api_client: Flickr API client, not yet entered
        config: Reconciler configuration

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    logger = logging.getLogger(__name__)
    logger.info(f"Reconciling {len(sources)} photo(s) into album '{album_title}'")

    try:
        async with api_client as store, HttpFetcher() as fetcher:
            reconciler = AlbumReconciler(store, fetcher, config)
            outcome = await reconciler.reconcile(album_title, sources)
    except RemoteQueryError as e:
        logger.error(f"Reconciliation aborted: {e}")
        return 1

    print_summary(outcome)
    return 1 if outcome.failed else 0


@app.command()
def reconcile(
    album_title: str = typer.Argument(..., help="Title of the target album"),
    urls: list[str] = typer.Argument(
        None,
        help="Image URLs to upload (Dropbox share links are accepted)",
        show_default=False,
    ),
    from_file: Path = typer.Option(
        None,
        "--from-file",
        "-f",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Text file with one image URL per line",
    ),
    tags: list[str] = typer.Option(
        None,
        "--tag",
        help="Tag to add to every uploaded photo (repeatable)",
    ),
    public: bool = typer.Option(
        False,
        "--public/--private",
        help="Upload photos as public or private",
    ),
    delay: float = typer.Option(
        0.0,
        "--delay",
        min=0.0,
        help="Seconds to wait between uploads",
    ),
    timeout: float = typer.Option(
        None,
        "--timeout",
        min=0.1,
        help="Timeout in seconds for each API call or download",
    ),
    max_concurrent: int = typer.Option(
        1,
        "--max-concurrent",
        "-c",
        min=1,
        max=50,
        help="Maximum number of concurrent uploads once the album exists",
    ),
    best_effort_index: bool = typer.Option(
        False,
        "--best-effort-index",
        help="Upload anyway if the album's existing photos cannot be listed",
    ),
    api_key: str = typer.Option(
        None, "--api-key", envvar="FLICKR_API_KEY", help="Flickr API key"
    ),
    api_secret: str = typer.Option(
        None, "--api-secret", envvar="FLICKR_API_SECRET", help="Flickr API secret"
    ),
    access_token: str = typer.Option(
        None, "--access-token", envvar="FLICKR_ACCESS_TOKEN", help="OAuth access token"
    ),
    access_secret: str = typer.Option(
        None, "--access-secret", envvar="FLICKR_ACCESS_SECRET", help="OAuth access token secret"
    ),
    user_id: str = typer.Option(
        None, "--user-id", envvar="FLICKR_USER_ID", help="Flickr NSID owning the albums"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Upload photos into a Flickr album.

    Finds the album titled ALBUM_TITLE (ignoring case) or creates it with the
    first uploaded photo as its cover. Photos uploaded by an earlier run are
    recognised by a machine tag and skipped.
    """
    setup_logging(verbose)

    credentials = {
        "FLICKR_API_KEY": api_key,
        "FLICKR_API_SECRET": api_secret,
        "FLICKR_ACCESS_TOKEN": access_token,
        "FLICKR_ACCESS_SECRET": access_secret,
    }
    missing = [name for name, value in credentials.items() if not value]
    if missing:
        console.print(
            f"[red]Error: Flickr credentials are required. Missing: {', '.join(missing)}[/red]"
        )
        raise typer.Exit(1)

    extra_tags = frozenset(tags or [])
    sources = [PhotoSource(url=url, tags=extra_tags) for url in urls or []]
    if from_file:
        sources.extend(load_sources(from_file, extra_tags))

    if not sources:
        console.print("[red]Error: no image URLs given.[/red]")
        raise typer.Exit(1)

    config = ReconcilerConfig(
        is_public=public,
        inter_request_delay=delay,
        operation_timeout=timeout,
        best_effort_index=best_effort_index,
        max_concurrent=max_concurrent,
    )
    api_client = FlickrAPIClient(
        api_key, api_secret, access_token, access_secret, user_id=user_id
    )

    exit_code = asyncio.run(async_reconcile(album_title, sources, api_client, config))
    raise typer.Exit(exit_code)


if __name__ == "__main__":
    app()
