"""CLI interface for rankeffect.

Commands:
    setup    - Configure gallery password and media/vote backends
    gallery  - Show the visible gallery with approval quotas
    vote     - Upvote, downvote or veto a media file
    upload   - Upload media files to SharePoint
    fetch    - Download a SharePoint item, converted for display
    convert  - Convert HEIC and/or make a thumbnail locally
    status   - Show configuration and vote counts
"""

import asyncio
import sys
from pathlib import Path

import click

from .config import (
    CONFIG_FILE,
    AppConfig,
    AuthConfig,
    FirestoreConfig,
    SharePointConfig,
    config_exists,
    load_config,
    save_config,
)
from .errors import GalleryError
from .logging_config import setup_logging

VOTE_LABELS = {"up": "upvote", "down": "downvote", "veto": "veto"}


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", type=click.Path(), default=None, help="Config file path")
@click.pass_context
def main(ctx, verbose, config):
    """RankEffect — Vote on the photos and videos in a shared gallery."""
    setup_logging(debug=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else CONFIG_FILE


def _require_config(ctx) -> AppConfig:
    config_path = ctx.obj["config_path"]
    if not config_exists(config_path):
        click.echo("Error: No config found. Run 'rankeffect setup' first.", err=True)
        sys.exit(1)
    try:
        return load_config(config_path)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _login(config: AppConfig) -> None:
    """Prompt for the gallery credentials and exit on mismatch."""
    from .auth import AuthGate

    gate = AuthGate(config.auth.username, config.auth.password)
    username = click.prompt("Username")
    password = click.prompt("Password", hide_input=True)
    if not gate.login(username, password):
        click.echo("Error: Invalid credentials.", err=True)
        sys.exit(1)


def _open_document_store(config: AppConfig):
    from .store import FirestoreStore, JsonDocumentStore

    if config.firestore:
        return FirestoreStore(
            config.firestore.project_id,
            collection=config.firestore.collection,
            api_key=config.firestore.api_key,
        )
    return JsonDocumentStore(config.state_dir)


def _open_sharepoint(config: AppConfig):
    from .sharepoint import SharePointClient

    if not config.sharepoint:
        return None
    sp = config.sharepoint
    return SharePointClient(
        sp.tenant_id,
        sp.client_id,
        sp.client_secret,
        sp.hostname,
        sp.site_name,
        folder_path=sp.folder_path,
    )


async def _with_controller(config: AppConfig, action):
    """Build a gallery controller around the configured backends and run action."""
    from .gallery import GalleryController
    from .sources import MediaAggregator
    from .store import VoteStore

    remote = _open_sharepoint(config)
    try:
        async with _open_document_store(config) as documents:
            aggregator = MediaAggregator(
                remote=remote,
                local_files=config.local_files,
                media_dir=config.media_dir,
            )
            controller = GalleryController(
                VoteStore(documents), aggregator, url_prefix=config.url_prefix
            )
            return await action(controller)
    finally:
        if remote is not None:
            await remote.close()


def _describe_votes(record) -> str:
    from .voting import compute_quota, format_quota

    quota = format_quota(compute_quota(record.upvotes, record.downvotes))
    text = f"{quota} ({record.upvotes} up, {record.downvotes} down)"
    if record.vetos:
        text += f", {record.vetos} veto{'s' if record.vetos > 1 else ''}"
    return text


@main.command()
@click.pass_context
def setup(ctx):
    """Configure the gallery password and backends."""
    config_path = ctx.obj["config_path"]

    click.echo("RankEffect — Setup")
    click.echo("=" * 40)
    click.echo()
    username = click.prompt("Gallery username")
    password = click.prompt("Gallery password", hide_input=True)

    click.echo()
    click.echo("(Optional) Firestore project for shared votes — press Enter to")
    click.echo("keep votes in a local file instead.")
    project_id = click.prompt("firestore project_id", default="", show_default=False)
    firestore = None
    if project_id:
        api_key = click.prompt("firestore api_key", default="", show_default=False)
        firestore = FirestoreConfig(project_id=project_id, api_key=api_key or None)

    click.echo()
    sharepoint = None
    if click.confirm("Load media from a SharePoint document library?", default=False):
        sharepoint = SharePointConfig(
            tenant_id=click.prompt("tenant_id"),
            client_id=click.prompt("client_id"),
            client_secret=click.prompt("client_secret", hide_input=True),
            hostname=click.prompt("hostname (e.g. contoso.sharepoint.com)"),
            site_name=click.prompt("site_name"),
            folder_path=click.prompt("folder_path", default="", show_default=False),
        )

    config = AppConfig(
        auth=AuthConfig(username=username, password=password),
        firestore=firestore,
        sharepoint=sharepoint,
    )
    save_config(config, config_path)
    click.echo(f"\nConfig saved to {config_path}")
    click.echo("Run 'rankeffect gallery' to browse the media.")


@main.command()
@click.pass_context
def gallery(ctx):
    """Show visible media with their approval quota."""
    config = _require_config(ctx)
    _login(config)

    async def show(controller):
        await controller.load()
        return controller

    try:
        controller = asyncio.run(_with_controller(config, show))
    except GalleryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if controller.error:
        click.echo(f"Warning: {controller.error}", err=True)
        click.echo("Showing local media only.", err=True)

    items = controller.visible_items()
    if not items:
        click.echo("No media available.")
        click.echo(
            "All media items have been vetoed or there are no files in the gallery."
        )
        return

    click.echo(f"{len(items)} media items")
    click.echo("=" * 40)
    for item in items:
        record = controller.votes_for(item.filename)
        click.echo(f"[{item.kind}] {item.filename}")
        click.echo(f"    {_describe_votes(record)}")
        click.echo(f"    {controller.media_path(item)}")


@main.command()
@click.argument("filename")
@click.argument("kind", type=click.Choice(sorted(VOTE_LABELS)))
@click.pass_context
def vote(ctx, filename, kind):
    """Cast a vote on FILENAME: up, down or veto."""
    config = _require_config(ctx)
    _login(config)

    async def cast(controller):
        return await controller.apply_vote(filename, kind)

    try:
        record = asyncio.run(_with_controller(config, cast))
    except GalleryError as e:
        click.echo(f"Error: vote not recorded: {e}", err=True)
        sys.exit(1)

    from .voting import is_hidden

    click.echo(f"Recorded {VOTE_LABELS[kind]} for {filename}")
    click.echo(_describe_votes(record))
    if is_hidden(record.vetos):
        click.echo(f"{filename} is now hidden from the gallery.")


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def upload(ctx, files):
    """Upload FILES to the SharePoint gallery folder."""
    config = _require_config(ctx)
    if not config.sharepoint:
        click.echo("Error: SharePoint is not configured. Run 'rankeffect setup'.", err=True)
        sys.exit(1)
    _login(config)

    from .upload import upload_batch

    def progress(done, total):
        click.echo(f"  {done}/{total} files processed", err=True)

    async def run():
        async with _open_sharepoint(config) as client:
            return await upload_batch(client, [Path(f) for f in files], progress)

    result = asyncio.run(run())

    for item in result.uploaded:
        click.echo(f"Uploaded {item.filename}")
    for path in result.skipped:
        click.echo(f"Skipped {path.name}: not an image or video", err=True)
    for failure in result.failed:
        click.echo(f"Failed {failure.path.name}: {failure.reason}", err=True)

    if not result.uploaded:
        sys.exit(1)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(), required=True, help="Output file")
@click.option("--thumbnail", is_flag=True, help="Make a 400x400 thumbnail")
def convert(input_file, output, thumbnail):
    """Convert INPUT_FILE for display (HEIC to JPEG, optional thumbnail)."""
    from .transform import prepare_media
    from .upload import guess_mime_type

    input_path = Path(input_file)
    try:
        data, content_type = prepare_media(
            input_path.name,
            input_path.read_bytes(),
            guess_mime_type(input_path.name),
            thumbnail=thumbnail,
        )
    except GalleryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    output_path = Path(output)
    output_path.write_bytes(data)
    click.echo(f"Wrote {len(data):,} bytes ({content_type}) to {output_path}")


@main.command()
@click.argument("item_id")
@click.option("-o", "--output", type=click.Path(), default=None, help="Output file")
@click.option("--thumbnail", is_flag=True, help="Make a 400x400 thumbnail")
@click.pass_context
def fetch(ctx, item_id, output, thumbnail):
    """Download SharePoint item ITEM_ID, converting it for display."""
    config = _require_config(ctx)
    if not config.sharepoint:
        click.echo("Error: SharePoint is not configured. Run 'rankeffect setup'.", err=True)
        sys.exit(1)
    _login(config)

    from .transform import prepare_media
    from .upload import guess_mime_type

    async def run():
        async with _open_sharepoint(config) as client:
            item = await client.get_item(item_id)
            return item, await client.download(item_id)

    try:
        item, raw = asyncio.run(run())
        data, content_type = prepare_media(
            item.filename,
            raw,
            item.mime_type or guess_mime_type(item.filename),
            thumbnail=thumbnail,
        )
    except GalleryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if output:
        output_path = Path(output)
    else:
        output_path = Path(item.filename)
        if content_type == "image/jpeg" and item.is_heic:
            output_path = output_path.with_suffix(".jpg")
    output_path.write_bytes(data)
    click.echo(f"Wrote {item.filename}: {len(data):,} bytes ({content_type}) to {output_path}")


@main.command()
@click.pass_context
def status(ctx):
    """Show configuration and vote counts."""
    config_path = ctx.obj["config_path"]
    has_config = config_exists(config_path)

    click.echo("RankEffect — Status")
    click.echo("=" * 40)
    click.echo(f"Config: {'Found' if has_config else 'Not configured'} ({config_path})")

    if not has_config:
        click.echo("\nRun 'rankeffect setup' to get started.")
        return

    config = _require_config(ctx)

    if config.firestore:
        click.echo(f"Votes: Firestore project {config.firestore.project_id}")
    else:
        click.echo(f"Votes: local file in {config.state_dir}")

    if config.sharepoint:
        click.echo(
            f"Remote media: {config.sharepoint.hostname}/sites/{config.sharepoint.site_name}"
        )
    else:
        click.echo("Remote media: Not configured")

    from .sources import MediaAggregator
    from .store import VoteStore

    local = MediaAggregator(
        local_files=config.local_files, media_dir=config.media_dir
    ).list_local_media()
    click.echo(f"Local media files: {len(local)}")

    async def count_votes():
        async with _open_document_store(config) as documents:
            return await VoteStore(documents).get_all_votes()

    try:
        votes = asyncio.run(count_votes())
    except GalleryError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    from .voting import is_hidden

    hidden = sum(1 for record in votes.values() if is_hidden(record.vetos))
    click.echo(f"Vote records: {len(votes)} ({hidden} hidden)")
