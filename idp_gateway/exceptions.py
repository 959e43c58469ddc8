"""
Error types raised by the artifact store and the backend client.
"""


class ArtifactStoreError(Exception):
    """Base class for artifact store failures."""


class BackendUnavailable(ArtifactStoreError):
    """
    The key/value backend could not be reached or did not answer in time.
    """

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"backend unavailable during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedPayload(ArtifactStoreError):
    """
    Payload could not be serialized for storage, or a stored record could not be decoded.
    """

    def __init__(self, key: str, detail: str = ""):
        self.key = key
        self.detail = detail
        super().__init__(f"malformed payload for {key}: {detail}" if detail else key)
