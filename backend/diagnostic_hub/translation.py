from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from .language import LANGUAGE_NAMES

_log = logging.getLogger("diagnostic_hub.translation")


@dataclass
class TranslationResult:
	questions: Any
	parse_error: bool = False


def build_system_prompt(target_name: str) -> str:
	return (
		"You are a professional translator specializing in educational content.\n"
		f"Translate the following test questions from English to {target_name}.\n\n"
		"CRITICAL RULES:\n"
		"1. Translate ONLY the text content (question text, options, section names)\n"
		"2. PRESERVE the exact JSON structure, field names, and IDs\n"
		"3. Keep mathematical expressions, numbers, and symbols unchanged\n"
		"4. Maintain the educational accuracy and difficulty level\n"
		"5. For multiple choice options (A, B, C, D), keep the letter prefixes unchanged\n"
		"6. Return valid JSON only - no markdown, no explanations"
	)


def build_user_prompt(questions: Any, target_name: str) -> str:
	return (
		f"Translate these test questions to {target_name}. Return the same JSON structure with translated text:\n\n"
		f"{json.dumps(questions, indent=2, ensure_ascii=False)}"
	)


def parse_model_json(text: str) -> Any:
	content = text.strip()
	if content.startswith("```json"):
		content = content[7:]
	if content.startswith("```"):
		content = content[3:]
	if content.endswith("```"):
		content = content[:-3]
	return json.loads(content.strip())


async def translate_questions(client, questions: Any, target_language: str) -> TranslationResult:
	"""Translate a question bank; English is returned untouched without a model call.

	``client`` is anything with an async ``generate(prompt, system=..., temperature=...)``.
	"""
	if target_language == "en":
		return TranslationResult(questions=questions)
	target_name = LANGUAGE_NAMES.get(target_language, target_language)
	content: Optional[str] = await client.generate(
		build_user_prompt(questions, target_name),
		system=build_system_prompt(target_name),
		temperature=0.3,
	)
	if not content:
		raise ValueError("No translation received from AI")
	try:
		return TranslationResult(questions=parse_model_json(content))
	except ValueError:
		_log.error("Failed to parse translated content: %s", content[:500])
		return TranslationResult(questions=questions, parse_error=True)
