"""Konfi backend CLI tool (konfictl)."""

import typer
from sqlalchemy.engine import make_url

app = typer.Typer(name="konfictl", help="Konfi Points backend CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


def _mysql_connect_args(url: str) -> dict:
    """Split a mysql+pymysql URL into pymysql.connect() arguments plus the database name."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "mysql":
        raise typer.BadParameter(f"Not a MySQL URL: {parsed.drivername}")
    return {
        "host": parsed.host or "localhost",
        "port": parsed.port or 3306,
        "user": parsed.username or "root",
        "password": parsed.password or "",
        "database": parsed.database or "",
    }


@db_app.command("create")
def db_create():
    """Create the MySQL database if it doesn't exist."""
    import pymysql
    from konfi.core.config import settings

    args = _mysql_connect_args(settings.DATABASE_URL)
    db_name = args.pop("database")
    conn = pymysql.connect(**args)
    try:
        cursor = conn.cursor()
        cursor.execute(
            f"CREATE DATABASE IF NOT EXISTS `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
        typer.echo(f"Database '{db_name}' created (or already exists)")
    finally:
        conn.close()


@db_app.command("init")
def db_init():
    """Create all tables."""
    from konfi.db.base import Base
    from konfi.db.session import engine
    import konfi.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    typer.echo("Tables created")


@db_app.command("seed")
def db_seed():
    """Seed the permission catalog and the bootstrap organization."""
    from konfi.core.config import settings
    from konfi.db.session import SessionLocal
    from konfi.db.seeds.seed_permissions import seed_permissions
    from konfi.db.seeds.seed_organization import seed_organization

    db = SessionLocal()
    try:
        added = seed_permissions(db)
        typer.echo(f"Seeded {added} permissions")
        if seed_organization(db):
            typer.echo(
                f"Created organization '{settings.DEFAULT_ORG_SLUG}' "
                f"with org admin '{settings.DEFAULT_ADMIN_USERNAME}'"
            )
        else:
            typer.echo(f"Organization '{settings.DEFAULT_ORG_SLUG}' already exists")
    finally:
        db.close()


@db_app.command("reset")
def db_reset():
    """Drop and recreate the database (DANGER)."""
    confirm = typer.confirm("This will DROP the entire database. Continue?")
    if not confirm:
        raise typer.Abort()
    import pymysql
    from konfi.core.config import settings

    args = _mysql_connect_args(settings.DATABASE_URL)
    db_name = args.pop("database")
    conn = pymysql.connect(**args)
    try:
        cursor = conn.cursor()
        cursor.execute(f"DROP DATABASE IF EXISTS `{db_name}`")
        cursor.execute(f"CREATE DATABASE `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
        typer.echo(f"Database '{db_name}' reset")
    finally:
        conn.close()


@app.command("health")
def health(url: str = typer.Option("http://localhost:8000", help="API base URL")):
    """Query a running server's health endpoint."""
    import httpx

    resp = httpx.get(f"{url.rstrip('/')}/api/admin/health", timeout=10)
    typer.echo(resp.json())
    if resp.status_code != 200 or resp.json().get("status") != "healthy":
        raise typer.Exit(code=1)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the API server."""
    import uvicorn
    uvicorn.run("konfi.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
