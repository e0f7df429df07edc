"""Abstract interface for secret retrieval."""

from typing import Protocol

from ..models.message import Credentials


class CredentialProvider(Protocol):
    """Source of the secrets a workflow needs.

    ``fetch`` is called once per workflow run; implementations must not cache.
    """

    def fetch(self) -> Credentials:
        """
        Return the current credentials.

        Raises:
            CredentialError: If any secret is unavailable
        """
        ...
