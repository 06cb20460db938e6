import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from prizmatrack.db import Base
from prizmatrack.models.enums import AppraisalType, OrderStatus, PaymentStatus, PropertyType

class Property(Base):
    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )

    property_type: Mapped[PropertyType] = mapped_column(
        Enum(PropertyType, name="property_type"), nullable=False
    )
    street: Mapped[str] = mapped_column(String(200), nullable=False)
    street2: Mapped[str | None] = mapped_column(String(200), nullable=True)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    state: Mapped[str] = mapped_column(String(60), nullable=False)
    zip: Mapped[str] = mapped_column(String(20), nullable=False)

class Order(Base):
    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), index=True, nullable=False
    )

    client_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("clients.id", ondelete="SET NULL"), index=True, nullable=True
    )
    appraiser_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )

    file_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    client_order_num: Mapped[str | None] = mapped_column(String(100), nullable=True)

    order_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    inspection_date: Mapped[date | None] = mapped_column(Date(), nullable=True)

    appraisal_type: Mapped[AppraisalType | None] = mapped_column(
        Enum(AppraisalType, name="appraisal_type"), nullable=True
    )
    order_status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.open
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"), nullable=False, default=PaymentStatus.unpaid
    )

    base_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    tech_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    questionnaire_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    questionnaire: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    contract: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    property: Mapped[Property] = relationship(lazy="joined", innerjoin=True)
