"""Lookup table from provider key to ServiceProfile."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from .exceptions import UnknownServiceError
from .models import ServiceProfile, builtin_profiles


class ServiceRegistry:
    """Immutable registry of provider profiles, built once at startup."""

    def __init__(self, profiles: Mapping[str, ServiceProfile]):
        self._profiles: Mapping[str, ServiceProfile] = MappingProxyType(
            dict(profiles)
        )

    @classmethod
    def default(cls) -> ServiceRegistry:
        """Registry holding the built-in ``openai`` and ``mlc`` profiles."""
        return cls(builtin_profiles())

    def get(self, name: str) -> ServiceProfile:
        """Return the profile for ``name``.

        Raises:
            UnknownServiceError: If ``name`` is not registered.
        """
        try:
            return self._profiles[name]
        except KeyError:
            raise UnknownServiceError(name, self.names()) from None

    def names(self) -> list[str]:
        return sorted(self._profiles)

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)
