"""Tier classification shared by grading, certificates, reports and pricing pages.

Every place that turns a percentage into a placement band imports
``classify`` from here; no other module keeps its own threshold literals.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


GREEN_THRESHOLD = 85.0
YELLOW_THRESHOLD = 66.0


class Tier(str, Enum):
	GREEN = "green"
	YELLOW = "yellow"
	RED = "red"

	@property
	def label(self) -> str:
		return TIER_INFO[self].label

	@classmethod
	def from_label(cls, label: Optional[str]) -> "Tier":
		"""Resolve a stored label ("Tier 2") or color ("yellow") back to a Tier."""
		for tier, info in TIER_INFO.items():
			if label in (info.label, tier.value):
				return tier
		raise ValueError(f"Unknown tier label: {label!r}")


@dataclass(frozen=True)
class TierInfo:
	label: str
	headline: str
	helper: str
	program: str
	threshold_text: str
	# certificate palette
	border: str
	background: str
	text: str


TIER_INFO: Dict[Tier, TierInfo] = {
	Tier.GREEN: TierInfo(
		label="Tier 1",
		headline="Demonstrated Mastery",
		helper="These skills meet or exceed grade-level expectations.",
		program="Enrichment Pod",
		threshold_text="85%+",
		border="#22c55e",
		background="#dcfce7",
		text="#166534",
	),
	Tier.YELLOW: TierInfo(
		label="Tier 2",
		headline="Strengthening Zone",
		helper="These skills are developing but need reinforcement to reach mastery.",
		program="Skill Builder Program",
		threshold_text="66-84%",
		border="#eab308",
		background="#fef9c3",
		text="#854d0e",
	),
	Tier.RED: TierInfo(
		label="Tier 3",
		headline="Priority Intervention Required",
		helper="These skills are below foundational mastery and require targeted support.",
		program="Intensive Intervention Plan",
		threshold_text="65% and below",
		border="#ef4444",
		background="#fee2e2",
		text="#991b1b",
	),
}


def classify(score: float) -> Tier:
	"""Map a percentage in [0, 100] to exactly one tier.

	>=85 is green (Tier 1), >=66 is yellow (Tier 2), anything lower is red
	(Tier 3).
	"""
	if score is None or score < 0 or score > 100:
		raise ValueError(f"score must be within [0, 100], got {score!r}")
	if score >= GREEN_THRESHOLD:
		return Tier.GREEN
	if score >= YELLOW_THRESHOLD:
		return Tier.YELLOW
	return Tier.RED


def tier_label(score: float) -> str:
	return classify(score).label


def placement_pathway() -> List[Dict[str, str]]:
	return [
		{
			"tier": info.label,
			"color": tier.value,
			"range": info.threshold_text,
			"program": info.program,
			"headline": info.headline,
		}
		for tier, info in TIER_INFO.items()
	]
