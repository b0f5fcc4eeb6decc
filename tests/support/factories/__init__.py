# Data factories for test data generation

from tests.support.factories.key_factory import b64, create_key, create_keyset_document
from tests.support.factories.record_factory import (
    create_contact,
    create_contact_document,
    create_ride_request,
    create_ride_request_document,
)

__all__ = [
    "b64",
    "create_contact",
    "create_contact_document",
    "create_key",
    "create_keyset_document",
    "create_ride_request",
    "create_ride_request_document",
]
