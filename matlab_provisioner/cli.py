# -*- coding: utf-8 -*-
"""
Command-line interface for the MATLAB image provisioner.

The build parameters can come from the YAML config file, the environment
(MATLAB_RELEASE, MATLAB_PRODUCT_LIST, MATLAB_INSTALL_LOCATION,
LICENSE_SERVER) or the global options below, in increasing precedence.
"""

from pathlib import Path

import click

from matlab_provisioner.common.logging_config import setup_logging
from matlab_provisioner.config.config_loader import (
    CONFIG_FILE_DEFAULT,
    load_app_settings,
)
from matlab_provisioner.image.builder import ImageBuilder
from matlab_provisioner.image.dockerfile import (
    render_dockerfile,
    write_dockerfile,
)
from matlab_provisioner.modular.orchestrator import InstallerOrchestrator


@click.group()
@click.option(
    "--config",
    "config_file",
    default=CONFIG_FILE_DEFAULT,
    show_default=True,
    help="YAML configuration file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug output.")
@click.option("--log-file", default=None, help="Also write JSON logs here.")
@click.option("--release", default=None, help="MATLAB release, e.g. R2024a.")
@click.option(
    "--products",
    default=None,
    help='Space-separated product list, e.g. "MATLAB Deep_Learning_Toolbox".',
)
@click.option(
    "--install-location", default=None, help="MATLAB install directory."
)
@click.option(
    "--license-server", default=None, help="License server as port@host."
)
@click.option(
    "--runtime",
    "container_runtime",
    default=None,
    help="Container runtime CLI (docker or podman).",
)
@click.option(
    "--extension/--no-extension",
    default=None,
    help="Include or leave out the MatConvNet extension.",
)
@click.pass_context
def cli(
    ctx,
    config_file,
    verbose,
    log_file,
    release,
    products,
    install_location,
    license_server,
    container_runtime,
    extension,
):
    """
    Build container images with MATLAB installed by the MATLAB Package Manager.
    """
    logger = setup_logging(
        "matlab-provisioner",
        log_level="DEBUG" if verbose else None,
        log_file_path=log_file,
    )
    app_settings = load_app_settings(
        cli_overrides={
            "release": release,
            "products": products,
            "install_location": install_location,
            "license_server": license_server,
            "container_runtime": container_runtime,
            "extension": extension,
        },
        config_file_path=config_file,
        current_logger=logger,
    )
    ctx.obj = {"settings": app_settings, "logger": logger}


@cli.command(name="list")
@click.pass_context
def list_command(ctx):
    """List the provisioning steps in execution order."""
    orchestrator = InstallerOrchestrator(
        ctx.obj["settings"], ctx.obj["logger"]
    )
    installers = orchestrator.get_available_installers()
    enabled = set(orchestrator.default_steps())
    for name in orchestrator.resolve_dependencies(sorted(installers)):
        description = installers[name].metadata.description
        marker = "" if name in enabled else " (disabled)"
        click.echo(f"{name}: {description}{marker}")


@cli.command(name="render")
@click.option(
    "-o",
    "--output",
    default=None,
    type=click.Path(dir_okay=False),
    help="Write the Dockerfile here instead of printing it.",
)
@click.argument("steps", nargs=-1)
@click.pass_context
def render_command(ctx, output, steps):
    """Render the Dockerfile for the configured build."""
    settings = ctx.obj["settings"]
    try:
        content = render_dockerfile(
            settings, list(steps) or None, current_logger=ctx.obj["logger"]
        )
    except (KeyError, ValueError) as e:
        raise click.ClickException(
            f"Cannot resolve provisioning steps: {e}"
        ) from e
    if output:
        write_dockerfile(output, content, settings, ctx.obj["logger"])
    else:
        click.echo(content, nl=False)


@cli.command(name="provision")
@click.argument("steps", nargs=-1)
@click.pass_context
def provision_command(ctx, steps):
    """
    Run the provisioning steps on this machine. Without STEPS every enabled
    step runs. Meant to run inside an image build as root or with sudo.
    """
    orchestrator = InstallerOrchestrator(
        ctx.obj["settings"], ctx.obj["logger"]
    )
    if not orchestrator.install(list(steps) or None):
        ctx.exit(1)


@cli.command(name="status")
@click.argument("steps", nargs=-1)
@click.pass_context
def status_command(ctx, steps):
    """Show which provisioning steps are already applied."""
    orchestrator = InstallerOrchestrator(
        ctx.obj["settings"], ctx.obj["logger"]
    )
    try:
        status = orchestrator.check_status(list(steps) or None)
    except (KeyError, ValueError) as e:
        raise click.ClickException(
            f"Cannot resolve provisioning steps: {e}"
        ) from e
    for name, installed in status.items():
        click.echo(f"{name}: {'installed' if installed else 'not installed'}")
    if not all(status.values()):
        ctx.exit(1)


@cli.command(name="build")
@click.option(
    "--context",
    "context_dir",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Build context directory.",
)
@click.option(
    "--dockerfile",
    default="Dockerfile",
    show_default=True,
    help="Dockerfile name inside the build context.",
)
@click.option("--tag", default=None, help="Image tag. Defaults to the configured tag.")
@click.pass_context
def build_command(ctx, context_dir, dockerfile, tag):
    """Render the Dockerfile into the build context and build the image."""
    settings = ctx.obj["settings"]
    logger = ctx.obj["logger"]
    dockerfile_path = write_dockerfile(
        Path(context_dir) / dockerfile,
        render_dockerfile(settings, current_logger=logger),
        settings,
        logger,
    )
    builder = ImageBuilder(settings, logger, tag=tag)
    try:
        built = builder.build(dockerfile_path, context_dir)
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e
    if not built:
        ctx.exit(1)


@cli.command(name="verify")
@click.option("--tag", default=None, help="Image tag. Defaults to the configured tag.")
@click.pass_context
def verify_command(ctx, tag):
    """Check a built image's MATLAB release and license variable."""
    builder = ImageBuilder(ctx.obj["settings"], ctx.obj["logger"], tag=tag)
    try:
        verified = builder.verify()
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e
    if not verified:
        ctx.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
