from __future__ import annotations

from sqlalchemy import ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from authsync.infrastructure.db.engine import Base


class UserModel(Base):
    """Profile row, inserted by a database trigger after provider sign-up."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)


class CustomerModel(Base):
    """Billing row, written by the payment provider sync."""

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("users.id"), primary_key=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    stripe_price_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    stripe_subscription_status: Mapped[str | None] = mapped_column(Text, nullable=True)


# Columns a signed-in user may change on their own profile row.
EDITABLE_PROFILE_COLUMNS = frozenset(
    column.name for column in UserModel.__table__.columns if column.name not in {"id", "email"}
)
