from __future__ import annotations

from typing import Dict, Optional, Protocol


class SettingsRepository(Protocol):
    """Key/value organization settings."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def all(self) -> Dict[str, str]:
        raise NotImplementedError
