"""Groups, profiles, things, connections and per-group member tables.

- groups
- profiles
- things
- connections
- group_memberships
- group_roles
- group_policies

Deleting a group cascades to everything it owns; a profile cannot be deleted
while a thing references it (NO ACTION, checked at the end of the
statement so that a group delete can cascade through both tables).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c1d5e7a9b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _member_table(name: str, value_column: str) -> None:
    op.create_table(
        name,
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name=f"fk_{name}_group_id_groups"),
            nullable=False,
        ),
        sa.Column("member_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(value_column, sa.String(15), nullable=False),
        sa.PrimaryKeyConstraint("group_id", "member_id", name=f"pk_{name}"),
    )
    op.create_index(f"ix_{name}_member_id", name, ["member_id"])


def upgrade() -> None:
    op.create_table(
        "groups",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(254), nullable=False),
        sa.Column("description", sa.String(1024), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.UniqueConstraint("org_id", "name", name="uq_groups_org_name"),
    )
    op.create_index("ix_groups_org_id", "groups", ["org_id"])

    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_profiles_group_id_groups"),
            nullable=False,
        ),
        sa.Column("name", sa.String(1024), nullable=False),
        sa.Column("config", postgresql.JSONB(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_profiles"),
        sa.UniqueConstraint("group_id", "name", name="uq_profiles_group_name"),
    )
    op.create_index("ix_profiles_group_id", "profiles", ["group_id"])

    op.create_table(
        "things",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_things_group_id_groups"),
            nullable=False,
        ),
        sa.Column(
            "profile_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("profiles.id", name="fk_things_profile_id_profiles"),
            nullable=False,
        ),
        sa.Column("name", sa.String(1024), nullable=False),
        sa.Column("key", sa.String(4096), nullable=False),
        sa.Column("external_key", sa.String(4096), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_things"),
        sa.UniqueConstraint("group_id", "name", name="uq_things_group_name"),
        sa.UniqueConstraint("key", name="uq_things_key"),
        sa.UniqueConstraint("external_key", name="uq_things_external_key"),
    )
    op.create_index("ix_things_group_id", "things", ["group_id"])
    op.create_index("ix_things_profile_id", "things", ["profile_id"])

    op.create_table(
        "connections",
        sa.Column(
            "channel_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("profiles.id", ondelete="CASCADE", name="fk_connections_channel_id_profiles"),
            nullable=False,
        ),
        sa.Column(
            "thing_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("things.id", ondelete="CASCADE", name="fk_connections_thing_id_things"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("channel_id", "thing_id", name="pk_connections"),
    )

    _member_table("group_memberships", "role")
    _member_table("group_roles", "role")
    _member_table("group_policies", "policy")


def downgrade() -> None:
    for name in ("group_policies", "group_roles", "group_memberships"):
        op.drop_index(f"ix_{name}_member_id", table_name=name)
        op.drop_table(name)
    op.drop_table("connections")
    op.drop_index("ix_things_profile_id", table_name="things")
    op.drop_index("ix_things_group_id", table_name="things")
    op.drop_table("things")
    op.drop_index("ix_profiles_group_id", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("ix_groups_org_id", table_name="groups")
    op.drop_table("groups")
