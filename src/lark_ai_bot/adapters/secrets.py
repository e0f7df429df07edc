"""Environment-backed credential provider."""

from __future__ import annotations

import os
from collections.abc import Mapping

from ..config.schema import CredentialsConfig
from ..models.message import Credentials
from ..utils.errors import CredentialError


class EnvCredentialProvider:
    """Reads credentials from environment variables on every call.

    Example:
        provider = EnvCredentialProvider(CredentialsConfig())
        credentials = provider.fetch()
    """

    def __init__(
        self,
        config: CredentialsConfig,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            config: Names of the environment variables to read.
            environ: Mapping to read from. Defaults to ``os.environ``.
        """
        self._config = config
        self._environ = environ if environ is not None else os.environ

    def _require(self, name: str) -> str:
        value = self._environ.get(name, "").strip()
        if not value:
            raise CredentialError(f"Environment variable {name} is not set")
        return value

    def fetch(self) -> Credentials:
        """Return fresh credentials.

        Raises:
            CredentialError: If any variable is missing or empty.
        """
        return Credentials(
            app_id=self._require(self._config.app_id_env),
            app_secret=self._require(self._config.app_secret_env),
            api_key=self._require(self._config.api_key_env),
        )
