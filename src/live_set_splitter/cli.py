"""Console script for live_set_splitter."""

import typer

from live_set_splitter.split_concert.cli import split

app = typer.Typer(help="Split live concert recordings into individual songs.")

app.command()(split)


@app.command()
def version():
    """Display version information."""
    typer.echo("Live Set Splitter v0.1.0")
    raise typer.Exit()


if __name__ == "__main__":
    app()
