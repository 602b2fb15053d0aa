"""Initial AuroraSocial schema.

- tenants
- users, user_sessions, verification_tokens
- individuos, familias, composicao_familiar
- atendimentos
- anexos

Tenant isolation is enforced by the ORM session hooks; every tenant-scoped
table carries an indexed tenant_id FK to tenants.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d9e7a5b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("state", sa.String(length=2), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_tenants_name"),
        sa.UniqueConstraint("slug", name="uq_tenants_slug"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="PENDING", nullable=False),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE", name="fk_users_tenant_id_tenants"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"])

    op.create_table(
        "user_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE", name="fk_user_sessions_user_id_users"),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"])

    op.create_table(
        "verification_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("identifier", sa.Text(), nullable=False),
        sa.Column("token_hash", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("identifier", "token_hash", name="uq_verification_tokens_identifier_token"),
    )
    op.create_index("ix_verification_tokens_identifier", "verification_tokens", ["identifier"])

    op.create_table(
        "individuos",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("nome_completo", sa.Text(), nullable=False),
        sa.Column("cpf", sa.Text(), nullable=False),
        sa.Column("data_nascimento", sa.Date(), nullable=False),
        sa.Column("sexo", sa.Text(), nullable=False),
        sa.Column("nome_mae", sa.Text(), nullable=True),
        sa.Column("nis", sa.Text(), nullable=True),
        sa.Column("rg", sa.Text(), nullable=True),
        sa.Column("titulo_eleitor", sa.Text(), nullable=True),
        sa.Column("carteira_trabalho", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE", name="fk_individuos_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL", name="fk_individuos_created_by_users"),
        sa.UniqueConstraint("tenant_id", "cpf", name="uq_individuos_tenant_cpf"),
    )
    op.create_index("ix_individuos_tenant_id", "individuos", ["tenant_id"])
    op.create_index("ix_individuos_nome_completo", "individuos", ["nome_completo"])
    op.create_index("ix_individuos_nis", "individuos", ["nis"])

    op.create_table(
        "familias",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("responsavel_familiar_id", sa.Uuid(), nullable=False),
        sa.Column("endereco", sa.Text(), nullable=False),
        sa.Column("renda_familiar_total", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE", name="fk_familias_tenant_id_tenants"),
        sa.ForeignKeyConstraint(
            ["responsavel_familiar_id"], ["individuos.id"], ondelete="RESTRICT",
            name="fk_familias_responsavel_familiar_id_individuos",
        ),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL", name="fk_familias_created_by_users"),
    )
    op.create_index("ix_familias_tenant_id", "familias", ["tenant_id"])
    op.create_index("ix_familias_responsavel_familiar_id", "familias", ["responsavel_familiar_id"])

    op.create_table(
        "composicao_familiar",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("familia_id", sa.Uuid(), nullable=False),
        sa.Column("individuo_id", sa.Uuid(), nullable=False),
        sa.Column("parentesco", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE", name="fk_composicao_familiar_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["familia_id"], ["familias.id"], ondelete="CASCADE", name="fk_composicao_familiar_familia_id_familias"),
        sa.ForeignKeyConstraint(["individuo_id"], ["individuos.id"], ondelete="CASCADE", name="fk_composicao_familiar_individuo_id_individuos"),
        sa.UniqueConstraint("familia_id", "individuo_id", name="uq_composicao_familiar_familia_individuo"),
    )
    op.create_index("ix_composicao_familiar_tenant_id", "composicao_familiar", ["tenant_id"])
    op.create_index("ix_composicao_familiar_familia_id", "composicao_familiar", ["familia_id"])
    op.create_index("ix_composicao_familiar_individuo_id", "composicao_familiar", ["individuo_id"])

    op.create_table(
        "atendimentos",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("individuo_id", sa.Uuid(), nullable=False),
        sa.Column("usuario_id", sa.Uuid(), nullable=False),
        sa.Column("data", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("tipo_demanda", sa.Text(), nullable=False),
        sa.Column("encaminhamento", sa.Text(), nullable=False),
        sa.Column("parecer_social", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE", name="fk_atendimentos_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["individuo_id"], ["individuos.id"], ondelete="CASCADE", name="fk_atendimentos_individuo_id_individuos"),
        sa.ForeignKeyConstraint(["usuario_id"], ["users.id"], ondelete="RESTRICT", name="fk_atendimentos_usuario_id_users"),
    )
    op.create_index("ix_atendimentos_tenant_id", "atendimentos", ["tenant_id"])
    op.create_index("ix_atendimentos_individuo_id", "atendimentos", ["individuo_id"])
    op.create_index("ix_atendimentos_usuario_id", "atendimentos", ["usuario_id"])
    op.create_index("ix_atendimentos_data", "atendimentos", ["data"])
    op.create_index("ix_atendimentos_tenant_data", "atendimentos", ["tenant_id", "data"])

    op.create_table(
        "anexos",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("storage_key", sa.Text(), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("mime_type", sa.Text(), nullable=False),
        sa.Column("uploaded_by", sa.Uuid(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("familia_id", sa.Uuid(), nullable=True),
        sa.Column("individuo_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE", name="fk_anexos_tenant_id_tenants"),
        sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"], ondelete="SET NULL", name="fk_anexos_uploaded_by_users"),
        sa.ForeignKeyConstraint(["familia_id"], ["familias.id"], ondelete="CASCADE", name="fk_anexos_familia_id_familias"),
        sa.ForeignKeyConstraint(["individuo_id"], ["individuos.id"], ondelete="CASCADE", name="fk_anexos_individuo_id_individuos"),
        sa.UniqueConstraint("storage_key", name="uq_anexos_storage_key"),
        sa.CheckConstraint(
            "(familia_id IS NOT NULL AND individuo_id IS NULL) OR "
            "(familia_id IS NULL AND individuo_id IS NOT NULL)",
            name="ck_anexos_single_owner",
        ),
    )
    op.create_index("ix_anexos_tenant_id", "anexos", ["tenant_id"])
    op.create_index("ix_anexos_familia_id", "anexos", ["familia_id"])
    op.create_index("ix_anexos_individuo_id", "anexos", ["individuo_id"])


def downgrade() -> None:
    op.drop_table("anexos")
    op.drop_table("atendimentos")
    op.drop_table("composicao_familiar")
    op.drop_table("familias")
    op.drop_table("individuos")
    op.drop_table("verification_tokens")
    op.drop_table("user_sessions")
    op.drop_table("users")
    op.drop_table("tenants")
