"""
Directory of user-registered OpenAI-compatible providers.
"""

import json
import random
import string
from dataclasses import asdict, replace
from pathlib import Path
from typing import Dict, Any, List, Optional

from ..models.core import CustomProvider, now_ms
from .logging import get_logger


class CustomProviderStore:
    """
    Keeps custom provider records, optionally persisted to a JSON file.

    Storage failures are logged rather than raised: an unreadable file yields
    an empty directory and a failed write leaves the in-memory state intact.
    """

    def __init__(self, storage_path: Optional[str] = None):
        self.storage_path = storage_path
        self.logger = get_logger(__name__)
        self._providers: List[CustomProvider] = self._load()

    def get_providers(self) -> List[CustomProvider]:
        return list(self._providers)

    def get_provider(self, provider_id: str) -> Optional[CustomProvider]:
        for provider in self._providers:
            if provider.id == provider_id:
                return provider
        return None

    def add_provider(self, name: str, base_url: str, models: Optional[List[str]] = None,
                     **settings: Any) -> CustomProvider:
        """Register a provider and return it with a generated id."""
        provider = CustomProvider(
            id=self._generate_id(),
            name=name,
            base_url=base_url,
            models=list(models or []),
            **settings
        )
        self._providers.append(provider)
        self._save()
        self.logger.info(f"Custom provider added: {name} ({provider.id})")
        return provider

    def update_provider(self, provider_id: str, updates: Dict[str, Any]) -> bool:
        for index, provider in enumerate(self._providers):
            if provider.id == provider_id:
                self._providers[index] = replace(provider, **updates)
                self._save()
                return True
        return False

    def delete_provider(self, provider_id: str) -> bool:
        remaining = [p for p in self._providers if p.id != provider_id]
        if len(remaining) == len(self._providers):
            return False
        self._providers = remaining
        self._save()
        return True

    def _load(self) -> List[CustomProvider]:
        if not self.storage_path or not Path(self.storage_path).exists():
            return []
        try:
            with open(self.storage_path, 'r', encoding='utf-8') as f:
                raw = json.load(f)
            return [CustomProvider(**entry) for entry in raw]
        except (OSError, ValueError, TypeError) as e:
            self.logger.error(f"Failed to load custom providers: {str(e)}")
            return []

    def _save(self) -> None:
        if not self.storage_path:
            return
        try:
            Path(self.storage_path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.storage_path, 'w', encoding='utf-8') as f:
                json.dump([asdict(p) for p in self._providers], f, indent=2, ensure_ascii=False)
        except OSError as e:
            self.logger.error(f"Failed to save custom providers: {str(e)}")

    @staticmethod
    def _generate_id() -> str:
        suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
        return f"provider_{now_ms()}_{suffix}"
