"""Record schemas for the documents whose PII fields are encrypted at rest.

Two record shapes pass through the record transformers:

- Ride requests: name, dob, phone, email, med_id, pickup_address and
  dropoff_address are encrypted; apt_date, apt_time and notes are not.
- Contact forms: first_name, last_name, email and phone are encrypted.

The ``*Data`` models are what request handlers produce; the ``*Document``
models add the bookkeeping fields the document store attaches. Both allow
extra fields so anything the store adds passes through the transformers
untouched.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RideRequestStatus = Literal["new", "reviewing", "scheduled", "spam", "closed"]

RIDE_REQUEST_ENCRYPTED_FIELDS: tuple[str, ...] = (
    "name",
    "dob",
    "phone",
    "email",
    "med_id",
    "pickup_address",
    "dropoff_address",
)

CONTACT_ENCRYPTED_FIELDS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "email",
    "phone",
)


class _EmailStatusMixin(BaseModel):
    """Delivery bookkeeping attached after the notification email is sent."""

    email_status: str | None = None
    email_sent_at: str | None = None
    message_id: str | None = None
    email_error: str | None = None
    email_failed_at: str | None = None


class RideRequestData(BaseModel):
    """Ride request as submitted by the public form.

    Attributes:
        name: Rider full name (encrypted at rest).
        dob: Date of birth, ISO date string (encrypted at rest).
        phone: Contact phone (encrypted at rest).
        email: Contact email (encrypted at rest).
        med_id: Medicaid ID (encrypted at rest).
        apt_date: Appointment date, ISO date string.
        apt_time: Appointment time, ISO time string.
        pickup_address: Pickup address (encrypted at rest).
        dropoff_address: Drop-off address (encrypted at rest).
        notes: Free-text notes.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    dob: str
    phone: str
    email: str
    med_id: str
    apt_date: str
    apt_time: str
    pickup_address: str
    dropoff_address: str
    notes: str = ""


class RideRequestDocument(RideRequestData, _EmailStatusMixin):
    """Stored ride request with document bookkeeping fields."""

    id: str
    contact_type: str = "Ride Request"
    tags: list[str] = Field(default_factory=list)
    created_at: str
    status: RideRequestStatus = "new"


class ContactFormData(BaseModel):
    """Contact form as submitted by the public form.

    ``phone`` is optional on the form. An empty string is a real value and is
    encrypted like any other; ``None`` means the field was never provided.
    """

    model_config = ConfigDict(extra="allow")

    first_name: str
    last_name: str
    email: str
    phone: str | None = None


class ContactFormDocument(ContactFormData, _EmailStatusMixin):
    """Stored contact form with document bookkeeping fields."""

    id: str
    contact_type: str = "Contact Form"
    tags: list[str] = Field(default_factory=list)
    created_at: str
    status: str = "new"
