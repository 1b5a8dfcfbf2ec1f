class TPOSError(Exception):
    """Base error for POS platform calls"""


class TPOSCredentialsNotFound(TPOSError):
    pass


class TPOSAPIError(TPOSError):
    """Non-2xx response from the POS platform"""

    def __init__(self, status_code, body=''):
        self.status_code = status_code
        self.body = body or ''
        super().__init__(f"TPOS API error {status_code}: {self.body[:500]}")


class TPOSPayloadError(TPOSError):
    """Response parsed but missing the data the next step needs"""


class TPOSValidationError(TPOSError):
    """Input rejected before anything is sent"""
