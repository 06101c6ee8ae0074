"""Initial database schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    ]


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nom", sa.String(length=120), nullable=False),
        sa.Column("prenom", sa.String(length=120)),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("admin", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )

    op.create_table(
        "eleve",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nom", sa.String(length=120), nullable=False),
        sa.Column("prenom", sa.String(length=120)),
        *_timestamps(),
    )

    op.create_table(
        "classe",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("nom", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("level", sa.String(length=120)),
        sa.Column("type_cours", sa.String(length=120)),
        sa.Column("location", sa.String(length=255)),
        sa.Column("salle", sa.String(length=120)),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("duree_seance", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("semaines_seances", sa.Text(), nullable=False),
        sa.Column("jour_semaine", sa.Integer()),
        sa.Column("heure_debut", sa.String(length=5)),
        sa.Column("rr_possibles", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_recuperation", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("duree_seance > 0", name="chk_classe_duree_positive"),
        sa.CheckConstraint(
            "jour_semaine IS NULL OR jour_semaine BETWEEN 0 AND 6",
            name="chk_classe_jour_semaine",
        ),
    )

    op.create_table(
        "classe_eleve",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("classe_id", sa.Integer(), sa.ForeignKey("classe.id", ondelete="CASCADE"), nullable=False),
        sa.Column("eleve_id", sa.Integer(), sa.ForeignKey("eleve.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("classe_id", "eleve_id", name="uq_classe_eleve"),
    )

    op.create_table(
        "seance",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("classe_id", sa.Integer(), sa.ForeignKey("classe.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date_heure", sa.DateTime(), nullable=False),
        sa.Column("duree", sa.Integer(), nullable=False),
        sa.Column("statut", sa.String(length=20), nullable=False, server_default="programmed"),
        sa.Column("notes", sa.Text()),
        sa.Column("week_number", sa.Integer()),
        sa.Column("rr_possibles", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("present_teacher_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="SET NULL")),
        *_timestamps(),
        sa.UniqueConstraint("classe_id", "date_heure", name="uq_seance_classe_date"),
    )

    op.create_table(
        "presence",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("seance_id", sa.Integer(), sa.ForeignKey("seance.id", ondelete="CASCADE"), nullable=False),
        sa.Column("eleve_id", sa.Integer(), sa.ForeignKey("eleve.id", ondelete="CASCADE"), nullable=False),
        sa.Column("statut", sa.String(length=20), nullable=False, server_default="no_status"),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("seance_id", "eleve_id", name="uq_presence_seance_eleve"),
    )

    op.create_table(
        "replacement_request",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("eleve_id", sa.Integer(), sa.ForeignKey("eleve.id", ondelete="CASCADE"), nullable=False),
        sa.Column("origin_seance_id", sa.Integer(), sa.ForeignKey("seance.id", ondelete="CASCADE"), nullable=False),
        sa.Column("destination_seance_id", sa.Integer(), sa.ForeignKey("seance.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        sa.Column("dest_statut", sa.String(length=20), nullable=False, server_default="no_status"),
        sa.Column("rr_type", sa.String(length=50), nullable=False, server_default="same_week"),
        sa.Column("penalize_rr", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("replacement_request")
    op.drop_table("presence")
    op.drop_table("seance")
    op.drop_table("classe_eleve")
    op.drop_table("classe")
    op.drop_table("eleve")
    op.drop_table("user")
