"""CLI entry point for openapi-from-source."""

from pathlib import Path

import click

from openapi_from_source.errors import OpenApiFromSourceError
from openapi_from_source.extractor.base import Framework
from openapi_from_source.generator.document import DEFAULT_DESCRIPTION, DEFAULT_TITLE, DEFAULT_VERSION, ApiInfo
from openapi_from_source.generator.serializer import FORMATS, serialize
from openapi_from_source.logging_config import configure_logging
from openapi_from_source.pipeline import generate_from_directory


@click.group()
def main():
    """openapi-from-source: generate OpenAPI documents from Rust web projects."""
    pass


@main.command()
@click.argument("project_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Output file (stdout if omitted).")
@click.option("-f", "--format", "fmt", default="yaml", type=click.Choice(FORMATS), help="Output format.")
@click.option("-w", "--framework", "frameworks", multiple=True, type=click.Choice([f.value for f in Framework]), help="Framework to extract (repeatable; auto-detected if omitted).")
@click.option("--title", default=DEFAULT_TITLE, envvar="OPENAPI_FROM_SOURCE_TITLE", show_default=True, help="API title.")
@click.option("--api-version", default=DEFAULT_VERSION, envvar="OPENAPI_FROM_SOURCE_API_VERSION", show_default=True, help="API version.")
@click.option("--description", default=DEFAULT_DESCRIPTION, envvar="OPENAPI_FROM_SOURCE_DESCRIPTION", help="API description.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and a full warning list.")
def generate(
    project_path: Path,
    output: Path | None,
    fmt: str,
    frameworks: tuple[str, ...],
    title: str,
    api_version: str,
    description: str,
    verbose: bool,
):
    """Generate an OpenAPI document from the Rust project at PROJECT_PATH."""
    configure_logging(verbose)
    # keep stdout clean for the document itself
    to_stderr = output is None

    click.echo(f"Scanning {project_path}...", err=to_stderr)
    info = ApiInfo(title=title, version=api_version, description=description or None)
    selected = [Framework(f) for f in frameworks] or None
    try:
        result = generate_from_directory(project_path, selected, info)
        text = serialize(result.document, fmt)
    except OpenApiFromSourceError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Frameworks: {', '.join(f.value for f in result.frameworks)}", err=to_stderr)
    click.echo(
        f"Found {result.route_count} routes and {result.schema_count} schemas "
        f"in {result.files_parsed}/{result.files_scanned} files.",
        err=to_stderr,
    )
    if result.warnings:
        click.echo(f"{result.warning_count} warnings.", err=to_stderr)
        if verbose:
            for diagnostic in result.warnings:
                click.echo(f"  {diagnostic}", err=to_stderr)

    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"OpenAPI document saved to {output}")
