import os

from alembic import command
from alembic.config import Config

from quizdesk.config import DATABASE_URL

ROOT = os.path.join(os.path.dirname(__file__), '..')


def _config(database_url=None):
    cfg = Config(os.path.join(ROOT, 'alembic.ini'))
    cfg.set_main_option('script_location', os.path.join(ROOT, 'alembic'))
    cfg.set_main_option('sqlalchemy.url', database_url or DATABASE_URL)
    cfg.attributes['url_from_caller'] = True
    # keep the application's logging setup
    cfg.attributes['configure_logger'] = False
    return cfg


def upgrade_head(database_url=None):
    # programmatically run `alembic upgrade head`
    command.upgrade(_config(database_url), 'head')


def downgrade_base(database_url=None):
    command.downgrade(_config(database_url), 'base')
