# migrations/env.py

import os
from logging.config import fileConfig

from alembic import context
from flask import current_app

from phpayroll import create_app, db
from phpayroll.models import payroll  # noqa: F401  (registers every table on db.metadata)

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# alembic.ini sits next to the migrations directory
if config.config_file_name is not None:
    alembic_ini_path = os.path.join(os.path.dirname(__file__), '..', 'alembic.ini')
    if os.path.exists(alembic_ini_path):
        fileConfig(alembic_ini_path)
    else:
        fileConfig(config.config_file_name)

target_metadata = db.metadata


def run_migrations_offline():
    """Run migrations in 'offline' mode.

    Emits SQL for the configured database URL without connecting.
    """
    app = create_app(os.environ.get('FLASK_ENV', 'default'))

    context.configure(
        url=app.config['SQLALCHEMY_DATABASE_URI'],
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode."""
    def process_revision_directives(context, revision, directives):
        # Skip empty autogenerate revisions
        if getattr(config.cmd_opts, 'autogenerate', False):
            script = directives[0]
            if script.upgrade_ops.is_empty():
                directives[:] = []

    app = create_app(os.environ.get('FLASK_ENV', 'default'))

    with app.app_context():
        with db.engine.connect() as connection:
            context.configure(
                connection=connection,
                target_metadata=target_metadata,
                process_revision_directives=process_revision_directives,
                **current_app.extensions["migrate"].configure_args
            )

            with context.begin_transaction():
                context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
