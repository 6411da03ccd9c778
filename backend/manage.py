from rollcall import create_app
from flask.cli import with_appcontext
from flask_migrate import upgrade, migrate, init
import click

app = create_app()

@app.cli.command("db-init")
@with_appcontext
def db_init():
    """Initializes migrations directory"""
    init()

@app.cli.command("db-migrate")
@with_appcontext
def db_migrate():
    """Creates a new migration"""
    migrate()

@app.cli.command("db-upgrade")
@with_appcontext
def db_upgrade():
    """Applies migrations"""
    upgrade()

@app.cli.command("seed")
@click.option("--reset", is_flag=True, help="Delete existing data first")
@with_appcontext
def seed(reset):
    """Loads demo users, classes, sessions and attendance"""
    from rollcall.seed import seed_data
    seed_data(reset=reset)
    click.echo("Seed data loaded")
