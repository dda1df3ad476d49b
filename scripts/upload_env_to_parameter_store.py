#!/usr/bin/env python3
"""
Upload the service settings from a .env file to AWS Parameter Store.

Keys and secrets are stored as SecureString; everything else as String.
The parameter names match what ``services.parameter_store`` reads.
"""

import os
import sys
from pathlib import Path

import boto3
import click
from botocore.exceptions import ClientError
from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from services.parameter_store import SETTINGS_PARAMETERS  # noqa: E402

SECURE_MARKERS = ("key", "secret")


def load_env_file(env_file_path: str = ".env") -> dict:
    """
    Read the settings from a .env file.

    Returns:
        Mapping of parameter name (below the prefix) to value
    """
    if not Path(env_file_path).exists():
        click.secho(f"Error: {env_file_path} file not found", fg="red", err=True)
        sys.exit(1)

    load_dotenv(env_file_path, override=True)

    parameters = {
        name: os.getenv(env_var)
        for env_var, name in SETTINGS_PARAMETERS.items()
        if os.getenv(env_var)
    }

    if not parameters:
        click.secho("Warning: No service settings found in .env file", fg="yellow")
        click.echo(f"Expected variables: {', '.join(SETTINGS_PARAMETERS)}")

    return parameters


def parameter_type(name: str) -> str:
    return (
        "SecureString"
        if any(marker in name.lower() for marker in SECURE_MARKERS)
        else "String"
    )


def upload_parameters(
    parameters: dict, parameter_prefix: str = "/rental-listings", dry_run: bool = False
) -> int:
    """
    Upload parameters to AWS Parameter Store.

    Returns:
        Number of parameters that failed to upload
    """
    if dry_run:
        click.secho("DRY RUN - Would upload the following parameters:", fg="blue")
        for name, value in parameters.items():
            masked_value = value[:6] + "..." if len(value) > 6 else "***"
            click.echo(
                f"  {parameter_prefix}/{name} ({parameter_type(name)}) = {masked_value}"
            )
        return 0

    ssm = boto3.client("ssm")
    failures = 0

    with click.progressbar(parameters.items(), label="Uploading parameters") as items:
        for name, value in items:
            full_name = f"{parameter_prefix}/{name}"
            try:
                response = ssm.put_parameter(
                    Name=full_name,
                    Value=value,
                    Type=parameter_type(name),
                    Description=f"Rental listings setting: {name}",
                    Overwrite=True,
                )
                click.secho(
                    f"Uploaded {full_name} (version {response['Version']})",
                    fg="green",
                )
            except ClientError as e:
                failures += 1
                click.secho(f"Failed to upload {full_name}: {e}", fg="red", err=True)

    return failures


def verify_parameters(parameters: dict, parameter_prefix: str) -> None:
    """Check that every uploaded parameter can be read back."""
    click.secho("\nVerifying uploaded parameters...", fg="blue")
    ssm = boto3.client("ssm")

    for name in parameters:
        full_name = f"{parameter_prefix}/{name}"
        try:
            response = ssm.get_parameter(Name=full_name, WithDecryption=True)
            click.secho(
                f"{full_name} exists (version {response['Parameter']['Version']})",
                fg="green",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ParameterNotFound":
                click.secho(f"{full_name} not found", fg="red")
            else:
                click.secho(f"Error checking {full_name}: {e}", fg="red")


@click.command()
@click.option("--env-file", default=".env", help="Path to .env file", show_default=True)
@click.option(
    "--prefix",
    default="/rental-listings",
    help="Parameter Store prefix",
    show_default=True,
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be uploaded without uploading"
)
@click.option("--verify", is_flag=True, help="Verify parameters after upload")
def main(env_file: str, prefix: str, dry_run: bool, verify: bool):
    """Upload Supabase and storage settings from a .env file to Parameter Store."""
    parameters = load_env_file(env_file)

    if not parameters:
        click.secho("No parameters found to upload", fg="red", err=True)
        sys.exit(1)

    click.secho(f"Found {len(parameters)} settings", fg="green")

    failures = upload_parameters(parameters, prefix.rstrip("/"), dry_run)

    if dry_run:
        click.secho("\nDry run complete.", fg="blue")
        return

    if verify:
        verify_parameters(parameters, prefix.rstrip("/"))

    if failures:
        sys.exit(1)

    click.secho("\nParameter upload complete!", fg="green")
    click.echo(f"Parameters are now available at prefix: {prefix}")


if __name__ == "__main__":
    main()
