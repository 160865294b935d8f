"""
Serac CLI - Command-line interface for compiling serverless services.
"""

import json
import logging
import sys
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from serac.artifacts.s3 import ArtifactFetcher
from serac.compilation.functions import compile_service
from serac.config.service import load_service
from serac.errors import CompilationError, ConfigurationError
from serac.hashing.file_hash import FileHasher
from serac.template.graph import ResourceGraph


def _fail(error: CompilationError) -> None:
    click.echo(f"Error [{error.code}]: {error}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """
    Serac - Compile serverless function definitions into CloudFormation templates.

    Describe functions in a service file and let Serac produce the
    resources, versions and permissions they need.
    """
    pass


@cli.command()
@click.argument("service_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    help="Write the template here instead of stdout",
)
@click.option("--stage", "-s", help="Override provider.stage")
@click.option("--region", "-r", help="Override provider.region")
@click.option(
    "--previous",
    type=click.Path(exists=True, dir_okay=False),
    help="Previously compiled template whose retained resources are kept",
)
@click.option(
    "--enforce-hash-update",
    is_flag=True,
    help="Re-version every versioned function once",
)
@click.option("--skip-download", is_flag=True, help="Do not download s3:// artifacts")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug output")
def compile(
    service_file: str,
    output: str | None,
    stage: str | None,
    region: str | None,
    previous: str | None,
    enforce_hash_update: bool,
    skip_download: bool,
    verbose: bool,
):
    """
    Compile a service file into a template.

    Example:
        serac compile serverless.yml
        serac compile serverless.yml --stage prod -o template.json
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        service = load_service(service_file, {"stage": stage, "region": region})
    except ValidationError as e:
        _fail(ConfigurationError(f"Invalid service file {service_file}:\n{e}"))
    except yaml.YAMLError as e:
        _fail(ConfigurationError(f"Could not parse {service_file}: {e}"))

    previous_graph = None
    if previous:
        previous_graph = ResourceGraph.from_template(
            json.loads(Path(previous).read_text(encoding="utf-8"))
        )

    try:
        if not skip_download:
            downloaded = ArtifactFetcher().fetch(service)
            if downloaded:
                click.echo(f"Downloaded {len(downloaded)} artifact(s)", err=True)

        graph, compiled = compile_service(
            service,
            enforce_hash_update=enforce_hash_update,
            previous=previous_graph,
        )
    except CompilationError as e:
        _fail(e)

    template = json.dumps(graph.to_template(), indent=2)
    if output:
        Path(output).write_text(template + "\n", encoding="utf-8")
    else:
        click.echo(template)

    click.echo(
        f"✓ Compiled {len(compiled)} function(s) into {len(graph)} resources",
        err=True,
    )
    for function in compiled:
        version = function.version_logical_id or "unversioned"
        click.echo(f"  - {function.name}: {version}", err=True)
    if output:
        click.echo(f"  Template: {output}", err=True)


@cli.command(name="hash")
@click.argument("path", type=click.Path(dir_okay=False))
def hash_file(path: str):
    """
    Print the base64 SHA-256 of a file.

    Example:
        serac hash .serverless/orders.zip
    """
    try:
        click.echo(FileHasher().hash(path))
    except CompilationError as e:
        _fail(e)


if __name__ == "__main__":
    cli()
