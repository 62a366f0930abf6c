"""
CLI: serve the API, list its routes.
Options fall back to SWEETSHOP_* environment settings.
"""
from __future__ import annotations

from typing import Optional

import typer

from sweetshop.app import create_app
from sweetshop.config import Settings

app = typer.Typer(help="Sweet shop backend: run the server or inspect routes.")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind address (default SWEETSHOP_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default SWEETSHOP_PORT)"),
    seed: Optional[bool] = typer.Option(None, "--seed/--no-seed", help="Load demo users and sample sweets"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes (development)"),
) -> None:
    """Run the HTTP server with uvicorn."""
    import uvicorn

    overrides = {} if seed is None else {"seed_sample_data": seed}
    settings = Settings.from_env(**overrides)
    bind_host = host or settings.host
    bind_port = port or settings.port
    typer.echo(f"Serving on http://{bind_host}:{bind_port} (docs at /docs)")
    if reload:
        uvicorn.run("sweetshop.app:create_app", factory=True, host=bind_host, port=bind_port, reload=True)
    else:
        create_app(settings).run(host=bind_host, port=bind_port)


@app.command()
def routes() -> None:
    """Print every route with the roles allowed to call it."""
    application = create_app(Settings.from_env(seed_sample_data=False))
    for route in application.routes:
        access = "public" if route.roles is None else ",".join(sorted(route.roles))
        typer.echo(f"{'|'.join(route.methods):<9} {route.path:<55} {access}")


def main() -> None:
    """Entry point for the sweetshop console command."""
    app()


if __name__ == "__main__":
    main()
