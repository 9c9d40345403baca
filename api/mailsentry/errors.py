"""
Error kinds raised by the store, lifecycle and ingestion layers.

The HTTP layer maps each kind to a status code via ``status_code``; batch
ingestion records them per item instead of aborting.
"""


class MailSentryError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class NotFoundAddress(MailSentryError):
    """Ingestion target is not registered or not active."""

    status_code = 404


class AddressAlreadyMonitored(MailSentryError):
    status_code = 409


class DuplicateMessage(MailSentryError):
    """A scan record already exists for this message id."""

    status_code = 409

    def __init__(self, message_id: str):
        super().__init__(f"Message already scanned: {message_id}")
        self.message_id = message_id


class NotFoundRecord(MailSentryError):
    status_code = 404

    def __init__(self, scan_id):
        super().__init__(f"Scan record not found: {scan_id}")
        self.scan_id = scan_id


class StorageUnavailable(MailSentryError):
    """The database could not be reached; the caller may retry."""

    status_code = 503
    retryable = True
