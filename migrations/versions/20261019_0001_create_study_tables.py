"""Create deck, card, review, daily stat and settings tables."""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "decks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ("parent_id",),
            ("decks.id",),
            name="fk_decks_parent_id_decks",
            ondelete="CASCADE",
        ),
    )

    op.create_table(
        "cards",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("deck_id", sa.Integer(), nullable=False),
        sa.Column("front", sa.Text(), nullable=False),
        sa.Column("back", sa.Text(), nullable=False),
        sa.Column("card_type", sa.String(length=16), server_default=sa.text("'basic'"), nullable=False),
        sa.Column("tags", sa.String(length=255), nullable=True),
        sa.Column("state", sa.String(length=16), server_default=sa.text("'new'"), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("interval", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("ease_factor", sa.Float(), server_default=sa.text("2.5"), nullable=False),
        sa.Column("repetitions", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("lapses", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("suspended", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("buried_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ("deck_id",),
            ("decks.id",),
            name="fk_cards_deck_id_decks",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_cards_deck_id_state_due_at",
        "cards",
        ("deck_id", "state", "due_at"),
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("card_id", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("interval", sa.Float(), nullable=False),
        sa.Column("ease_factor", sa.Float(), nullable=False),
        sa.Column("time_spent_ms", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("previous_state", sa.String(length=16), nullable=False),
        sa.Column("new_state", sa.String(length=16), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ("card_id",),
            ("cards.id",),
            name="fk_reviews_card_id_cards",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_reviews_card_id", "reviews", ("card_id",))

    op.create_table(
        "daily_stats",
        sa.Column("date", sa.String(length=10), primary_key=True, nullable=False),
        sa.Column("new_cards", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("reviewed_cards", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("again_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("hard_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("good_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("easy_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("time_spent_ms", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("retention_rate", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("deck_stats", sa.JSON(), nullable=True),
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            server_onupdate=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_table("daily_stats")
    op.drop_index("ix_reviews_card_id", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_cards_deck_id_state_due_at", table_name="cards")
    op.drop_table("cards")
    op.drop_table("decks")
