# type: ignore
import os

from invoke import task


@task
def venv(ctx):
    """Create the development environment with uv."""
    ctx.run("uv sync --extra test --extra dev")


@task
def lint(ctx):
    """Run ruff and mypy over the package."""
    ctx.run("ruff check src tests", pty=True)
    ctx.run("ruff format --check src tests", pty=True)
    ctx.run("mypy src", pty=True)


@task
def test(ctx):
    """Run the test suite with coverage."""
    ctx.run("pytest --cov=rvscan --cov-report=term-missing", pty=True)


@task
def scan(ctx, loglevel="INFO"):
    """Sweep the local network with the configured settings."""
    ctx.run(f"LOGLEVEL={loglevel} rvscan scan", pty=True)


@task
def build_package(ctx):
    """Build sdist and wheel into dist/."""
    ctx.run("rm -rf dist")
    ctx.run("uv build")


@task
def release(ctx):
    """Build and publish to PyPI."""
    token = os.getenv("PYPI_TOKEN")
    if not token:
        raise ValueError("PYPI_TOKEN environment variable is not set")

    build_package(ctx)
    ctx.run(f"uv publish --token {token}")
