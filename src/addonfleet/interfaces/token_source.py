"""Token source interface."""

from abc import ABC, abstractmethod

from addonfleet.interfaces.cloud_types import BearerToken


class TokenSource(ABC):
    """Renewable provider of bearer tokens bound to a fixed scope.

    Implementations own their caching and refresh policy and must be safe to
    call from several threads.
    """

    @abstractmethod
    def token(self) -> BearerToken:
        """Return a currently valid token.

        Raises:
            CredentialError: If a token cannot be obtained
        """
