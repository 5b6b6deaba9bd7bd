from __future__ import annotations

from alembic import op

from rivr_api.core.database import Base
import rivr_api.models  # noqa: F401

revision = "0001_platform_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Platform tables only; tenant tables are created per schema by the provisioner.
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    Base.metadata.drop_all(bind=op.get_bind())
