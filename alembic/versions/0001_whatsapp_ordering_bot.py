from __future__ import annotations

from alembic import op

from dinebot.core.database import Base
import dinebot.models  # noqa: F401

revision = "0001_whatsapp_ordering_bot"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # create_all skips tables that already exist
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    Base.metadata.drop_all(bind=op.get_bind())
