"""Helpers for the JSON question banks stored on each test.

Question banks come in several layouts: a flat list of questions, a list of
sections each holding ``questions``, a list of items each holding
``sections``, or a single object with ``sections``.
"""
from __future__ import annotations

from typing import Any, Dict, Iterator, Optional


ANSWER_KEY_FIELDS = frozenset({"correct_answer", "correctAnswer"})

MULTIPLE_CHOICE = "multiple-choice"


def strip_answer_keys(data: Any) -> Any:
	"""Return a copy of ``data`` without answer-key fields at any depth."""
	if isinstance(data, list):
		return [strip_answer_keys(item) for item in data]
	if isinstance(data, dict):
		return {
			key: strip_answer_keys(value)
			for key, value in data.items()
			if key not in ANSWER_KEY_FIELDS
		}
	return data


def _is_question(item: Any) -> bool:
	return isinstance(item, dict) and any(k in item for k in ("question", "question_text", "id")) and "questions" not in item and "sections" not in item


def _section_questions(sections: Any) -> Iterator[Dict[str, Any]]:
	for section in sections or []:
		if isinstance(section, dict):
			for q in section.get("questions") or []:
				if isinstance(q, dict):
					yield q


def iter_questions(data: Any) -> Iterator[Dict[str, Any]]:
	if isinstance(data, dict):
		yield from _section_questions(data.get("sections"))
		return
	if not isinstance(data, list) or not data:
		return
	first = data[0]
	if isinstance(first, dict) and "sections" in first:
		for item in data:
			if isinstance(item, dict):
				yield from _section_questions(item.get("sections"))
	elif isinstance(first, dict) and "questions" in first:
		yield from _section_questions(data)
	else:
		for item in data:
			if _is_question(item):
				yield item


def count_questions(data: Any) -> int:
	return sum(1 for _ in iter_questions(data))


def answer_key(question: Dict[str, Any]) -> Optional[str]:
	value = question.get("correct_answer") or question.get("correctAnswer")
	return None if value in (None, "") else str(value)


def normalize_question_type(value: Optional[str]) -> str:
	if not value:
		return MULTIPLE_CHOICE
	normalized = value.lower().replace("_", "-").replace(" ", "-")
	if "multiple" in normalized or "choice" in normalized:
		return MULTIPLE_CHOICE
	if "short" in normalized:
		return "short-answer"
	if "long" in normalized or "essay" in normalized:
		return "long-answer"
	return normalized


def question_topic(question: Dict[str, Any]) -> str:
	topic = question.get("topic") or question.get("skill_tag") or question.get("section") or ""
	topic = str(topic).replace("_", " ").replace("-", " ").strip()
	return topic.title() if topic else "General"


def question_index(data: Any) -> Dict[str, Dict[str, Any]]:
	return {str(q["id"]): q for q in iter_questions(data) if q.get("id") is not None}
