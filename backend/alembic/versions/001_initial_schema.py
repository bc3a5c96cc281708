"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op

from orderflow.database import Base
from orderflow import models  # noqa: F401  registers tables on Base.metadata

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Tables mirror the SQLAlchemy models; later revisions carry explicit DDL.
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    Base.metadata.drop_all(bind=op.get_bind())
