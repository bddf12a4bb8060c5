"""Preferred display language, persisted through a pluggable store."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

from sqlalchemy.orm import Session

from .models import UserPreference

_log = logging.getLogger("diagnostic_hub.language")

LANGUAGE_KEY = "preferredLanguage"
DEFAULT_LANGUAGE = "en"

LANGUAGE_LABELS: Dict[str, str] = {
	"en": "English",
	"es": "Español",
	"fr": "Français",
	"zh": "中文",
}

# Names used when prompting the translator
LANGUAGE_NAMES: Dict[str, str] = {
	"en": "English",
	"es": "Spanish",
	"fr": "French",
	"zh": "Mandarin Chinese",
}


class PreferenceStore(Protocol):
	def get(self, key: str) -> Optional[str]: ...

	def set(self, key: str, value: str) -> None: ...


class MemoryPreferenceStore:
	def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
		self._values: Dict[str, str] = dict(initial or {})

	def get(self, key: str) -> Optional[str]:
		return self._values.get(key)

	def set(self, key: str, value: str) -> None:
		self._values[key] = value


class DatabasePreferenceStore:
	"""Per-user key/value rows in ``user_preferences``."""

	def __init__(self, db: Session, user_id: str) -> None:
		self.db = db
		self.user_id = user_id

	def _row(self, key: str) -> Optional[UserPreference]:
		return (
			self.db.query(UserPreference)
			.filter(UserPreference.user_id == self.user_id, UserPreference.key == key)
			.first()
		)

	def get(self, key: str) -> Optional[str]:
		row = self._row(key)
		return row.value if row else None

	def set(self, key: str, value: str) -> None:
		row = self._row(key)
		if row is None:
			row = UserPreference(user_id=self.user_id, key=key)
		row.value = value
		self.db.add(row)
		self.db.commit()


class LanguagePreference:
	def __init__(self, store: PreferenceStore) -> None:
		self.store = store
		saved = store.get(LANGUAGE_KEY)
		self._language = saved if saved in LANGUAGE_LABELS else DEFAULT_LANGUAGE

	@property
	def language(self) -> str:
		return self._language

	@property
	def label(self) -> str:
		return LANGUAGE_LABELS[self._language]

	def set_language(self, language: str) -> None:
		if language not in LANGUAGE_LABELS:
			raise ValueError(f"Unsupported language: {language!r}")
		_log.debug("Setting language to %s", language)
		self._language = language
		self.store.set(LANGUAGE_KEY, language)

	def as_dict(self) -> Dict[str, str]:
		return {"language": self.language, "label": self.label}


def language_options() -> list[Dict[str, str]]:
	return [{"value": code, "label": label} for code, label in LANGUAGE_LABELS.items()]
