"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates all tables for CampusConnect:
departments, clubs, users, clearance_requests,
conversations, conversation_participants, messages.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- departments ---
    op.create_table(
        "departments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False, unique=True),
    )

    # --- clubs ---
    op.create_table(
        "clubs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False, unique=True),
        sa.Column("departmentId", sa.String(36), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
    )

    # --- users ---
    op.create_table(
        "users",
        sa.Column("userID", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("fullName", sa.String(150), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("passwordHash", sa.String(255), nullable=False, server_default=""),
        sa.Column("departmentID", sa.String(36), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("clubID", sa.String(36), sa.ForeignKey("clubs.id"), nullable=True),
        sa.Column("createdAt", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- clearance_requests ---
    op.create_table(
        "clearance_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("studentUserID", sa.String(36), sa.ForeignKey("users.userID"), nullable=False, index=True),
        sa.Column("studentFullName", sa.String(150), nullable=False),
        sa.Column("studentDepartmentName", sa.String(150), nullable=False),
        sa.Column("studentClubName", sa.String(150), nullable=True),
        sa.Column("departmentIdAtRequest", sa.String(36), nullable=False, index=True),
        sa.Column("clubIdAtRequest", sa.String(36), nullable=True, index=True),
        sa.Column("requestedDate", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("clubApprovalStatus", sa.String(20), nullable=False),
        sa.Column("clubApproverID", sa.String(36), nullable=True),
        sa.Column("clubApprovalDate", sa.DateTime(timezone=True), nullable=True),
        sa.Column("clubApprovalNotes", sa.Text, nullable=True),
        sa.Column("departmentApprovalStatus", sa.String(20), nullable=False),
        sa.Column("departmentApproverID", sa.String(36), nullable=True),
        sa.Column("departmentApprovalDate", sa.DateTime(timezone=True), nullable=True),
        sa.Column("departmentApprovalNotes", sa.Text, nullable=True),
        sa.Column("ssgStatus", sa.String(20), nullable=False),
        sa.Column("ssgApproverID", sa.String(36), nullable=True),
        sa.Column("ssgApprovalDate", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ssgApprovalNotes", sa.Text, nullable=True),
        sa.Column("unifiedClearanceID", sa.String(32), nullable=True, index=True),
        sa.Column("overallStatus", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
    )

    # --- conversations ---
    op.create_table(
        "conversations",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("groupName", sa.String(150), nullable=True),
        sa.Column("lastMessageText", sa.Text, nullable=True),
        sa.Column("lastMessageTimestamp", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("lastMessageSenderId", sa.String(36), nullable=True),
        sa.Column("createdAt", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- conversation_participants ---
    op.create_table(
        "conversation_participants",
        sa.Column("conversation_id", sa.String(64), sa.ForeignKey("conversations.id"), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.userID"), primary_key=True, index=True),
        sa.Column("fullName", sa.String(150), nullable=False),
    )

    # --- messages ---
    op.create_table(
        "messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("conversationId", sa.String(64), sa.ForeignKey("conversations.id"), nullable=False),
        sa.Column("senderId", sa.String(36), sa.ForeignKey("users.userID"), nullable=False),
        sa.Column("senderName", sa.String(150), nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_messages_conversation_timestamp", "messages", ["conversationId", "timestamp"])


def downgrade() -> None:
    op.drop_index("ix_messages_conversation_timestamp", table_name="messages")
    op.drop_table("messages")
    op.drop_table("conversation_participants")
    op.drop_table("conversations")
    op.drop_table("clearance_requests")
    op.drop_table("users")
    op.drop_table("clubs")
    op.drop_table("departments")
