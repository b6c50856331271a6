"""
Exceptions used by the Wercker approval tooling.
"""


class WerckerError(Exception):
    pass


class TransportError(WerckerError):
    """
    Raised when a request to the Wercker API fails on the network or with a non-2xx status.
    """
    def __init__(self, url, message, status_code=None):
        self.url = url
        self.status_code = status_code
        if status_code is not None:
            self.message = f"Request to {url} failed with status code {status_code}: {message}"
        else:
            self.message = f"Request to {url} failed: {message}"
        super().__init__(self.message)

    def __str__(self):
        return self.message


class DecodeError(WerckerError):
    pass


class WerckerLookupError(WerckerError, LookupError):
    pass


class GateError(WerckerError):
    pass


class NotFoundError(WerckerError):
    pass
