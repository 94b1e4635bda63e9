"""Initial occupancy transition schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list:
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _unit_user_columns() -> list:
    return [
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "units",
        *_audit_columns(),
        sa.Column("unit_number", sa.String(length=50), nullable=False),
        sa.Column("unit_name", sa.String(length=255), nullable=True),
        sa.Column("occupancy_status", sa.String(length=20), nullable=False, server_default="vacant"),
    )
    op.create_index("uq_units_unit_number", "units", ["unit_number"], unique=True)

    op.create_table(
        "users",
        *_audit_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "roles",
        *_audit_columns(),
        sa.Column("slug", sa.String(length=50), nullable=False, unique=True),
        sa.Column("role_name", sa.String(length=100), nullable=False),
    )

    op.create_table(
        "user_roles",
        *_audit_columns(),
        *_unit_user_columns(),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_user_roles_unit_user_active", "user_roles", ["unit_id", "user_id", "is_active"])
    op.create_index("ix_user_roles_user_role_active", "user_roles", ["user_id", "role_id", "is_active"])

    op.create_table(
        "role_to_family_member_mappings",
        *_audit_columns(),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("user_role_id", sa.Integer(), sa.ForeignKey("user_roles.id"), nullable=False),
        sa.Column("family_member_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
    )
    op.create_index(
        "ix_role_to_family_member_mappings_user_role_id",
        "role_to_family_member_mappings",
        ["user_role_id"],
    )

    op.create_table(
        "family_member_service_mappings",
        *_audit_columns(),
        *_unit_user_columns(),
        sa.Column("family_member_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("service_key", sa.String(length=50), nullable=False),
    )
    op.create_index("ix_family_member_service_unit_user", "family_member_service_mappings", ["unit_id", "user_id"])

    op.create_table(
        "user_update_requests",
        *_audit_columns(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("middle_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("dob", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(length=20), nullable=True),
        sa.Column("honorific", sa.String(length=20), nullable=True),
        sa.Column("profession", sa.String(length=100), nullable=True),
        sa.Column("nationality", sa.Integer(), nullable=True),
        sa.Column("residency_status", sa.String(length=50), nullable=True),
        sa.Column("alternative_mobile", sa.String(length=30), nullable=True),
        sa.Column("alternative_email", sa.String(length=255), nullable=True),
        sa.Column("passport_number", sa.String(length=50), nullable=True),
        sa.Column("passport_expiry", sa.Date(), nullable=True),
        sa.Column("eid_number", sa.String(length=50), nullable=True),
        sa.Column("eid_expiry", sa.Date(), nullable=True),
        sa.Column("dial_code", sa.String(length=10), nullable=True),
        sa.Column("mobile", sa.String(length=30), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_user_update_requests_user_id", "user_update_requests", ["user_id"])

    op.create_table(
        "move_in_requests",
        *_audit_columns(),
        sa.Column("move_in_request_no", sa.String(length=100), nullable=False),
        sa.Column("request_type", sa.String(length=20), nullable=False),
        *_unit_user_columns(),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("move_in_date", sa.Date(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
    )
    op.create_index("uq_move_in_request_no", "move_in_requests", ["move_in_request_no"], unique=True)
    op.create_index("ix_move_in_requests_unit_user", "move_in_requests", ["unit_id", "user_id"])

    op.create_table(
        "move_in_request_details_tenant",
        *_audit_columns(),
        sa.Column("move_in_request_id", sa.Integer(), sa.ForeignKey("move_in_requests.id"), nullable=False),
        sa.Column("tenancy_contract_start_date", sa.Date(), nullable=True),
        sa.Column("tenancy_contract_end_date", sa.Date(), nullable=True),
    )
    op.create_index(
        "ix_move_in_request_details_tenant_move_in_request_id",
        "move_in_request_details_tenant",
        ["move_in_request_id"],
    )

    op.create_table(
        "move_in_request_details_hho_company",
        *_audit_columns(),
        sa.Column("move_in_request_id", sa.Integer(), sa.ForeignKey("move_in_requests.id"), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("trade_license_number", sa.String(length=100), nullable=True),
        sa.Column("lease_start_date", sa.Date(), nullable=True),
        sa.Column("lease_end_date", sa.Date(), nullable=True),
    )
    op.create_index(
        "ix_move_in_request_details_hho_company_move_in_request_id",
        "move_in_request_details_hho_company",
        ["move_in_request_id"],
    )

    op.create_table(
        "move_in_request_details_hho_owner",
        *_audit_columns(),
        sa.Column("move_in_request_id", sa.Integer(), sa.ForeignKey("move_in_requests.id"), nullable=False),
        sa.Column("unit_permit_number", sa.String(length=100), nullable=True),
        sa.Column("unit_permit_start_date", sa.Date(), nullable=True),
        sa.Column("unit_permit_expiry_date", sa.Date(), nullable=True),
    )
    op.create_index(
        "ix_move_in_request_details_hho_owner_move_in_request_id",
        "move_in_request_details_hho_owner",
        ["move_in_request_id"],
    )

    op.create_table(
        "move_out_requests",
        *_audit_columns(),
        sa.Column("move_out_request_no", sa.String(length=100), nullable=False),
        sa.Column("request_type", sa.String(length=20), nullable=False),
        *_unit_user_columns(),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("move_out_date", sa.Date(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
    )
    op.create_index("uq_move_out_request_no", "move_out_requests", ["move_out_request_no"], unique=True)
    op.create_index("ix_move_out_requests_unit_user", "move_out_requests", ["unit_id", "user_id"])

    op.create_table(
        "access_card_requests",
        *_audit_columns(),
        *_unit_user_columns(),
        sa.Column("card_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
    )
    op.create_index("ix_access_card_requests_unit_user", "access_card_requests", ["unit_id", "user_id"])

    op.create_table(
        "power_of_attorney_requests",
        *_audit_columns(),
        *_unit_user_columns(),
        sa.Column("poa_status", sa.String(length=20), nullable=False),
    )
    op.create_index("ix_poa_requests_unit_user", "power_of_attorney_requests", ["unit_id", "user_id"])

    op.create_table(
        "power_of_attorney",
        *_audit_columns(),
        *_unit_user_columns(),
        sa.Column("attorney_name", sa.String(length=255), nullable=True),
        sa.Column("valid_until", sa.Date(), nullable=True),
    )
    op.create_index("ix_poa_unit_user", "power_of_attorney", ["unit_id", "user_id"])

    op.create_table(
        "visitor_requests",
        *_audit_columns(),
        *_unit_user_columns(),
        sa.Column("visitor_name", sa.String(length=255), nullable=True),
        sa.Column("visit_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_visitor_requests_unit_user", "visitor_requests", ["unit_id", "user_id"])

    op.create_table(
        "amenity_bookings",
        *_audit_columns(),
        *_unit_user_columns(),
        sa.Column("amenity_name", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("is_cancelled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("cancel_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_reason", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_amenity_bookings_unit_user", "amenity_bookings", ["unit_id", "user_id"])

    op.create_table(
        "unit_bookings",
        *_audit_columns(),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id"), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
    )
    op.create_index("ix_unit_bookings_customer_email", "unit_bookings", ["customer_email"])

    op.create_table(
        "integrations",
        *_audit_columns(),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("header", sa.String(length=100), nullable=True),
    )

    op.create_table(
        "job_run_leases",
        sa.Column("job_name", sa.String(length=100), primary_key=True),
        sa.Column("holder", sa.String(length=255), nullable=False),
        sa.Column("acquired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("job_run_leases")
    op.drop_table("integrations")
    op.drop_index("ix_unit_bookings_customer_email", table_name="unit_bookings")
    op.drop_table("unit_bookings")
    op.drop_index("ix_amenity_bookings_unit_user", table_name="amenity_bookings")
    op.drop_table("amenity_bookings")
    op.drop_index("ix_visitor_requests_unit_user", table_name="visitor_requests")
    op.drop_table("visitor_requests")
    op.drop_index("ix_poa_unit_user", table_name="power_of_attorney")
    op.drop_table("power_of_attorney")
    op.drop_index("ix_poa_requests_unit_user", table_name="power_of_attorney_requests")
    op.drop_table("power_of_attorney_requests")
    op.drop_index("ix_access_card_requests_unit_user", table_name="access_card_requests")
    op.drop_table("access_card_requests")
    op.drop_index("ix_move_out_requests_unit_user", table_name="move_out_requests")
    op.drop_index("uq_move_out_request_no", table_name="move_out_requests")
    op.drop_table("move_out_requests")
    op.drop_table("move_in_request_details_hho_owner")
    op.drop_table("move_in_request_details_hho_company")
    op.drop_table("move_in_request_details_tenant")
    op.drop_index("ix_move_in_requests_unit_user", table_name="move_in_requests")
    op.drop_index("uq_move_in_request_no", table_name="move_in_requests")
    op.drop_table("move_in_requests")
    op.drop_table("user_update_requests")
    op.drop_table("family_member_service_mappings")
    op.drop_table("role_to_family_member_mappings")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_index("uq_units_unit_number", table_name="units")
    op.drop_table("units")
