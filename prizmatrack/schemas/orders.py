import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from prizmatrack.models.enums import AppraisalType, OrderStatus, PaymentStatus, PropertyType

Line = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Fee = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]

class PropertyIn(BaseModel):
    property_type: PropertyType
    street: Line
    street2: str | None = Field(default=None, max_length=200)
    city: Line
    state: Line
    zip: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)]

class PropertyUpdateIn(BaseModel):
    property_type: PropertyType | None = None
    street: Line | None = None
    street2: str | None = Field(default=None, max_length=200)
    city: Line | None = None
    state: Line | None = None
    zip: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)] | None = None

class PropertyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    property_type: PropertyType
    street: str
    street2: str | None
    city: str
    state: str
    zip: str

class OrderFields(BaseModel):
    client_id: uuid.UUID | None = None
    appraiser_id: uuid.UUID | None = None

    file_number: str | None = Field(default=None, max_length=100)
    client_order_num: str | None = Field(default=None, max_length=100)

    order_date: date | None = None
    due_date: date | None = None
    inspection_date: date | None = None

    appraisal_type: AppraisalType | None = None

    base_fee: Fee | None = None
    tech_fee: Fee | None = None
    questionnaire_fee: Fee | None = None

class OrderCreateIn(OrderFields):
    order_status: OrderStatus = OrderStatus.open
    payment_status: PaymentStatus = PaymentStatus.unpaid
    questionnaire: bool = False
    contract: bool = False
    sent: bool = False

    property: PropertyIn

class OrderUpdateIn(OrderFields):
    order_status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    questionnaire: bool | None = None
    contract: bool | None = None
    sent: bool | None = None

    property: PropertyUpdateIn | None = None

class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    client_id: uuid.UUID | None
    appraiser_id: uuid.UUID | None
    file_number: str | None
    client_order_num: str | None
    order_date: date | None
    due_date: date | None
    inspection_date: date | None
    appraisal_type: AppraisalType | None
    order_status: OrderStatus
    payment_status: PaymentStatus
    base_fee: Decimal | None
    tech_fee: Decimal | None
    questionnaire_fee: Decimal | None
    questionnaire: bool
    contract: bool
    sent: bool
    created_by: uuid.UUID | None
    created_at: datetime
    property: PropertyOut
