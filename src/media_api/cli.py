# cli.py
import asyncio
import json
from dataclasses import asdict

import click

from media_api.adapters.storage import S3StorageBackend
from media_api.config.settings import get_settings
from media_api.services.auth import JwtService
from media_api.services.listing import ListingService


@click.group()
def cli():
    """CLI commands for the Media Uploads API"""
    pass

@cli.command()
def show_config():
    """Print the effective settings"""
    settings = get_settings()

    rows = [
        ("Deployment mode", settings.deployment_mode),
        ("AWS region", settings.aws_region),
        ("S3 endpoint", settings.aws_endpoint_url if settings.is_local_mode else "(AWS default)"),
        ("Bucket", settings.s3_bucket_name),
        ("Public base URL", settings.public_base_url),
        ("Max upload size", f"{settings.max_upload_bytes} bytes"),
        ("Protected assets", len(settings.protected_asset_urls)),
    ]
    for label, value in rows:
        click.echo(f"{label + ':':<18}{value}")

@cli.command()
@click.option("--host", default="0.0.0.0", help="Interface to bind")
@click.option("--port", default=8000, type=int, help="Port to listen on")
def serve(host, port):
    """Run the API with uvicorn"""
    import uvicorn
    from media_api.main import create_app

    uvicorn.run(create_app(get_settings()), host=host, port=port)

@cli.command()
@click.option("--email", required=True, help="Email claim")
@click.option("--role", default="user", help="Role claim (admin or user)")
@click.option("--user-id", default=None, help="User id claim")
@click.option("--ttl-minutes", default=60, type=int, help="Token lifetime")
def issue_token(email, role, user_id, ttl_minutes):
    """Mint a development bearer token"""
    settings = get_settings()
    token = JwtService.from_settings(settings).issue(email, role=role, user_id=user_id, ttl_minutes=ttl_minutes)
    click.echo(f"{settings.auth_scheme} {token}")

@cli.command()
def list_files():
    """List stored assets as JSON"""
    settings = get_settings()
    listing = ListingService(S3StorageBackend.from_settings(settings), settings.public_base_url)

    records = asyncio.run(listing.list())
    click.echo(json.dumps([asdict(record) for record in records], indent=2))

if __name__ == "__main__":
    cli()
