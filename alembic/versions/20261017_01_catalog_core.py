"""
Catalog core: films, reference data, junctions, watchlist.

- films (versioned) + GIN index for `simple` title search
- genres / actors / directors (unique names, append-only)
- film_genres / film_actors / film_directors (composite PKs)
- watchlist (versioned, one row per user/film)
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic.
revision = "20261017_01_catalog_core"
down_revision = None
branch_labels = None
depends_on = None

_REFERENCE_TABLES = (
    ("genres", "film_genres", "genre_id"),
    ("actors", "film_actors", "actor_id"),
    ("directors", "film_directors", "director_id"),
)


def upgrade() -> None:
    # --- films ---
    op.create_table(
        "films",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("runtime", sa.Integer(), nullable=False),
        sa.Column("rating", sa.REAL(), server_default=sa.text("0"), nullable=False),
        sa.Column("description", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("image", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.CheckConstraint("runtime > 0", name="ck_films_runtime_positive"),
        sa.CheckConstraint("char_length(title) <= 500", name="ck_films_title_len"),
        sa.CheckConstraint("version >= 1", name="ck_films_version_positive"),
        sa.PrimaryKeyConstraint("id", name="pk_films"),
    )
    op.create_index(
        "ix_films_title_tsv",
        "films",
        [sa.text("to_tsvector('simple', title)")],
        postgresql_using="gin",
    )

    # --- reference data + junctions ---
    for entity, junction, fk in _REFERENCE_TABLES:
        op.create_table(
            entity,
            sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
            sa.Column("name", sa.Text(), nullable=False),
            sa.CheckConstraint("length(btrim(name)) > 0", name=f"ck_{entity}_name_not_blank"),
            sa.PrimaryKeyConstraint("id", name=f"pk_{entity}"),
            sa.UniqueConstraint("name", name=f"uq_{entity}_name"),
        )
        op.create_table(
            junction,
            sa.Column("film_id", sa.BigInteger(), nullable=False),
            sa.Column(fk, sa.BigInteger(), nullable=False),
            sa.ForeignKeyConstraint(
                ["film_id"], ["films.id"], name=f"fk_{junction}_film_id_films", ondelete="CASCADE"
            ),
            sa.ForeignKeyConstraint(
                [fk], [f"{entity}.id"], name=f"fk_{junction}_{fk}_{entity}", ondelete="RESTRICT"
            ),
            sa.PrimaryKeyConstraint("film_id", fk, name=f"pk_{junction}"),
        )
        op.create_index(f"ix_{junction}_{fk}", junction, [fk])

    # --- watchlist ---
    op.create_table(
        "watchlist",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("film_id", sa.BigInteger(), nullable=False),
        sa.Column("added_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("notes", sa.Text(), server_default=sa.text("''"), nullable=False),
        sa.Column("priority", sa.Integer(), server_default=sa.text("5"), nullable=False),
        sa.Column("watched", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("watched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.CheckConstraint("priority BETWEEN 1 AND 10", name="ck_watchlist_priority_range"),
        sa.CheckConstraint("rating IS NULL OR rating BETWEEN 1 AND 10", name="ck_watchlist_rating_range"),
        sa.CheckConstraint("char_length(notes) <= 1000", name="ck_watchlist_notes_len"),
        sa.CheckConstraint("rating IS NULL OR watched", name="ck_watchlist_rating_requires_watched"),
        sa.CheckConstraint("watched = (watched_at IS NOT NULL)", name="ck_watchlist_watched_at_iff_watched"),
        sa.ForeignKeyConstraint(
            ["film_id"], ["films.id"], name="fk_watchlist_film_id_films", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_watchlist"),
        sa.UniqueConstraint("user_id", "film_id", name="watchlist_user_film_unique"),
    )
    op.create_index("ix_watchlist_film_id", "watchlist", ["film_id"])
    op.create_index("ix_watchlist_user_added", "watchlist", ["user_id", "added_at"])


def downgrade() -> None:
    op.drop_index("ix_watchlist_user_added", table_name="watchlist")
    op.drop_index("ix_watchlist_film_id", table_name="watchlist")
    op.drop_table("watchlist")

    for entity, junction, fk in reversed(_REFERENCE_TABLES):
        op.drop_index(f"ix_{junction}_{fk}", table_name=junction)
        op.drop_table(junction)
        op.drop_table(entity)

    op.drop_index("ix_films_title_tsv", table_name="films")
    op.drop_table("films")
