"""Calendar visibility flag on sessions"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_seance_actif"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("seance") as batch_op:
        batch_op.add_column(
            sa.Column("actif", sa.Boolean(), nullable=False, server_default=sa.text("1"))
        )


def downgrade() -> None:
    with op.batch_alter_table("seance") as batch_op:
        batch_op.drop_column("actif")
