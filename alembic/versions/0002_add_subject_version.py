"""add version column to subject
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002_add_subject_version'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if "version" in [c["name"] for c in inspector.get_columns("subject")]:
        return
    with op.batch_alter_table("subject") as batch_op:
        batch_op.add_column(sa.Column("version", sa.Integer(), nullable=False, server_default="0"))


def downgrade():
    with op.batch_alter_table("subject") as batch_op:
        batch_op.drop_column("version")
