"""
Request body schemas.

Each route parses its JSON body with one of these models through
``parse_body``. Field names follow the JSON the frontend sends, so some are
camelCase. Business rules with their own error messages (missing fields,
quantities, date ranges) are enforced by the services, not here.
"""
from datetime import date, datetime, timezone
from typing import Any, List, Optional

from flask import request
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError


def parse_datetime(value):
    """Accept a date-only string or an ISO-8601 datetime; return naive UTC"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
            else:
                parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            raise ValueError(f'Invalid date: {value}')
    else:
        raise ValueError(f'Invalid date: {value}')

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _blank_to_none(value):
    if isinstance(value, str) and value.strip() == '':
        return None
    return value


class RentalPeriod(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def coerce_dates(cls, value):
        return parse_datetime(value)


# ---------- Cart ----------

class CartAddRequest(RentalPeriod):
    product_id: Optional[int] = None
    # Checked by the cart service so that bools and floats are rejected
    quantity: Any = None


class CartUpdateRequest(BaseModel):
    quantity: Any = None


# ---------- Orders ----------

class OrderLineRequest(RentalPeriod):
    cartId: Optional[int] = None
    productId: Optional[int] = None
    quantity: Any = None


class PlaceOrderRequest(BaseModel):
    cartItems: List[OrderLineRequest] = Field(default_factory=list)
    guestSessionId: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None

    def contact(self):
        return {
            'name': self.name,
            'email': self.email,
            'address': self.address,
            'phone': self.phone
        }


class StatusUpdate(BaseModel):
    status: Optional[str] = None


# ---------- Users ----------

class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None

    @field_validator('email', mode='before')
    @classmethod
    def blank_email(cls, value):
        return _blank_to_none(value)


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    phone: Optional[str] = None

    @field_validator('email', mode='before')
    @classmethod
    def blank_email(cls, value):
        return _blank_to_none(value)


class PasswordChange(BaseModel):
    oldPassword: Optional[str] = None
    newPassword: Optional[str] = None


# ---------- Catalog ----------

class ProductRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    regular_price: Optional[float] = None
    sale_price: Optional[float] = None
    imageBase64: Optional[str] = None
    galleryBase64: List[str] = Field(default_factory=list)
    existingGalleryImages: Optional[List[str]] = None
    available: Optional[bool] = None
    category_id: Optional[int] = None

    @field_validator('regular_price', 'sale_price', 'category_id', mode='before')
    @classmethod
    def blank_numbers(cls, value):
        return _blank_to_none(value)


class CategoryRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    imageBase64: Optional[str] = None


class PageUpdate(BaseModel):
    content: Optional[str] = None


# ---------- Contact ----------

class ContactSubmit(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    company: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None

    @field_validator('email', mode='before')
    @classmethod
    def blank_email(cls, value):
        return _blank_to_none(value)


def parse_body(schema):
    """Validate the current request's JSON body against ``schema``"""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')

    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ValidationError('Invalid request body', details='; '.join(problems))
