"""Record-level encryption for ride requests and contact forms.

This service applies the envelope codec to the fixed set of sensitive fields
of each record shape, leaving every other field untouched. Request handlers
encrypt records before persistence and decrypt them right after retrieval,
so plaintext PII never reaches the document store.

Usage:
    from envelope_crypto.services.record_crypto import RecordCryptoService

    records = RecordCryptoService(crypto)
    stored = records.encrypt_ride_request(ride_data)
    ride = records.decrypt_ride_request(stored_doc)

Batch Policy:
    decrypt_ride_requests / decrypt_contacts are fail-closed: the first record
    that cannot be decrypted aborts the whole batch. List endpoints that must
    show the readable records use the *_partial variants, which return the
    readable records plus per-record failures.

Security Notes:
    - Failures are logged with record index and id only, never field values
    - A record is atomically readable or not; no partially decrypted records
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog
from pydantic import BaseModel

from envelope_crypto.exceptions import EnvelopeCryptoError
from envelope_crypto.schemas.records import (
    CONTACT_ENCRYPTED_FIELDS,
    RIDE_REQUEST_ENCRYPTED_FIELDS,
    ContactFormData,
    ContactFormDocument,
    RideRequestData,
    RideRequestDocument,
)
from envelope_crypto.utils.encryption import EnvelopeCryptoService

log = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

_CONTACT_FIELDS_WITHOUT_PHONE = tuple(f for f in CONTACT_ENCRYPTED_FIELDS if f != "phone")


@dataclass
class RecordDecryptFailure:
    """A record that could not be decrypted in a partial batch.

    Attributes:
        index: Position of the record in the input batch.
        record_id: Document id, if the record has one.
        error: The crypto error raised while decrypting it.
    """

    index: int
    record_id: str | None
    error: EnvelopeCryptoError


@dataclass
class BatchDecryptResult:
    """Outcome of a partial-success batch decrypt.

    Attributes:
        records: Successfully decrypted records, in input order.
        failures: One entry per record that could not be decrypted.
    """

    records: list = field(default_factory=list)
    failures: list[RecordDecryptFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every record decrypted."""
        return not self.failures


class RecordCryptoService:
    """Field-level encryption of ride-request and contact-form records.

    Attributes:
        crypto: Envelope codec shared with the rest of the application.

    Example:
        >>> records = RecordCryptoService(crypto)
        >>> stored = records.encrypt_contact(contact)
        >>> records.decrypt_contact(stored).email == contact.email
        True
    """

    def __init__(self, crypto: EnvelopeCryptoService) -> None:
        self.crypto = crypto

    def _encrypt_fields(
        self, record: RecordT, fields: Iterable[str], aad: str | None
    ) -> RecordT:
        update = {name: self.crypto.encrypt(getattr(record, name), aad) for name in fields}
        return record.model_copy(update=update)

    def _decrypt_fields(
        self, record: RecordT, fields: Iterable[str], aad: str | None
    ) -> RecordT:
        # Build the whole update before copying so a failure leaves nothing half-decrypted
        update = {name: self.crypto.decrypt(getattr(record, name), aad) for name in fields}
        return record.model_copy(update=update)

    # ------------------------------------------------------------------ #
    # Ride requests
    # ------------------------------------------------------------------ #

    def encrypt_ride_request(
        self, data: RideRequestData | None, aad: str | None = None
    ) -> RideRequestData | None:
        """Return a copy of the ride request with its PII fields encrypted.

        name, dob, phone, email, med_id, pickup_address and dropoff_address
        are encrypted; apt_date, apt_time, notes and any extra fields are
        copied unchanged.

        Args:
            data: Plaintext ride request (None is returned as-is).
            aad: Optional context bound to every encrypted field.

        Raises:
            AadRequiredError: If the keyring requires AAD and none was given.
        """
        if data is None:
            return None
        return self._encrypt_fields(data, RIDE_REQUEST_ENCRYPTED_FIELDS, aad)

    def decrypt_ride_request(
        self, doc: RideRequestDocument | None, aad: str | None = None
    ) -> RideRequestDocument | None:
        """Return a copy of the stored ride request with its PII fields decrypted.

        Raises:
            EnvelopeCryptoError: If any field fails to decrypt; the record is
                not returned partially decrypted.
        """
        if doc is None:
            return None
        return self._decrypt_fields(doc, RIDE_REQUEST_ENCRYPTED_FIELDS, aad)

    def decrypt_ride_requests(
        self, docs: list[RideRequestDocument] | None, aad: str | None = None
    ) -> list[RideRequestDocument] | None:
        """Decrypt a batch of ride requests, failing on the first bad record.

        Raises:
            EnvelopeCryptoError: From the first record that fails.
        """
        if docs is None:
            return None
        return [self.decrypt_ride_request(doc, aad) for doc in docs]

    def decrypt_ride_requests_partial(
        self, docs: Iterable[RideRequestDocument], aad: str | None = None
    ) -> BatchDecryptResult:
        """Decrypt a batch of ride requests, collecting per-record failures."""
        return self._decrypt_partial(docs, self.decrypt_ride_request, aad)

    # ------------------------------------------------------------------ #
    # Contact forms
    # ------------------------------------------------------------------ #

    def encrypt_contact(
        self, data: ContactFormData | None, aad: str | None = None
    ) -> ContactFormData | None:
        """Return a copy of the contact form with its PII fields encrypted.

        A missing phone (None) is treated as an empty string, and an empty
        phone is encrypted like any other value, so every stored contact
        carries a phone envelope.

        Raises:
            AadRequiredError: If the keyring requires AAD and none was given.
        """
        if data is None:
            return None
        if data.phone is None:
            data = data.model_copy(update={"phone": ""})
        return self._encrypt_fields(data, CONTACT_ENCRYPTED_FIELDS, aad)

    def decrypt_contact(
        self, doc: ContactFormDocument | None, aad: str | None = None
    ) -> ContactFormDocument | None:
        """Return a copy of the stored contact form with its PII fields decrypted.

        Raises:
            EnvelopeCryptoError: If any field fails to decrypt.
        """
        if doc is None:
            return None
        # Documents stored without a phone have nothing to decrypt there
        if doc.phone is None:
            doc = doc.model_copy(update={"phone": ""})
            return self._decrypt_fields(doc, _CONTACT_FIELDS_WITHOUT_PHONE, aad)
        return self._decrypt_fields(doc, CONTACT_ENCRYPTED_FIELDS, aad)

    def decrypt_contacts(
        self, docs: list[ContactFormDocument] | None, aad: str | None = None
    ) -> list[ContactFormDocument] | None:
        """Decrypt a batch of contact forms, failing on the first bad record.

        Raises:
            EnvelopeCryptoError: From the first record that fails.
        """
        if docs is None:
            return None
        return [self.decrypt_contact(doc, aad) for doc in docs]

    def decrypt_contacts_partial(
        self, docs: Iterable[ContactFormDocument], aad: str | None = None
    ) -> BatchDecryptResult:
        """Decrypt a batch of contact forms, collecting per-record failures."""
        return self._decrypt_partial(docs, self.decrypt_contact, aad)

    def _decrypt_partial(self, docs, decrypt_one, aad: str | None) -> BatchDecryptResult:
        result = BatchDecryptResult()
        for index, doc in enumerate(docs):
            try:
                result.records.append(decrypt_one(doc, aad))
            except EnvelopeCryptoError as e:
                record_id = getattr(doc, "id", None)
                log.warning(
                    "record_decrypt_failed",
                    index=index,
                    record_id=record_id,
                    error_type=type(e).__name__,
                )
                result.failures.append(
                    RecordDecryptFailure(index=index, record_id=record_id, error=e)
                )
        return result
