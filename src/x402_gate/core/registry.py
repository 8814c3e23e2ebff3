"""
Immutable (scheme, network) -> scheme client mapping.

Registries are built by setup code and only read while handling requests;
``register`` returns a new registry instead of mutating the existing one.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from .deadline import Deadline
from .errors import NoSchemeRegistered
from .models import PaymentPayload, PaymentRequirements, ResourceInfo

__all__ = ["SchemeClient", "SchemeRegistry"]


class SchemeClient(Protocol):
    scheme: str

    def create_payment_payload(
        self,
        requirements: PaymentRequirements,
        *,
        resource: Optional[ResourceInfo] = None,
        deadline: Optional[Deadline] = None,
    ) -> PaymentPayload:
        ...


def _network_matches(pattern: str, network: str) -> bool:
    if pattern == network:
        return True
    if pattern.endswith(":*"):
        return network.startswith(pattern[:-1])
    return False


class SchemeRegistry:
    """
    Ordered registrations; exact network matches win over wildcard patterns
    such as ``eip155:*``.
    """

    def __init__(self, entries: Iterable[Tuple[str, str, SchemeClient]] = ()) -> None:
        self._entries: Tuple[Tuple[str, str, SchemeClient], ...] = tuple(entries)

    def register(self, network: str, client: SchemeClient, *, scheme: Optional[str] = None) -> "SchemeRegistry":
        scheme = scheme or client.scheme
        kept = tuple(
            entry for entry in self._entries if (entry[0], entry[1]) != (scheme, network)
        )
        return SchemeRegistry(kept + ((scheme, network, client),))

    @property
    def entries(self) -> Mapping[Tuple[str, str], SchemeClient]:
        return MappingProxyType({(scheme, network): client for scheme, network, client in self._entries})

    def find(self, scheme: str, network: str) -> Optional[SchemeClient]:
        wildcard: Optional[SchemeClient] = None
        for entry_scheme, pattern, client in self._entries:
            if entry_scheme != scheme:
                continue
            if pattern == network:
                return client
            if wildcard is None and _network_matches(pattern, network):
                wildcard = client
        return wildcard

    def select(
        self,
        accepts: Sequence[PaymentRequirements],
    ) -> Tuple[PaymentRequirements, SchemeClient]:
        """
        Return the first offer, in the server's order, with a registered client.
        """
        for requirements in accepts:
            client = self.find(requirements.scheme, requirements.network)
            if client is not None:
                return requirements, client
        raise NoSchemeRegistered([(item.scheme, item.network) for item in accepts])

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{scheme}/{network}" for scheme, network, _ in self._entries)
        return f"SchemeRegistry({pairs})"
