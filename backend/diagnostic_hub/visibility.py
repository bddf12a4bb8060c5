"""Test-session lockout driven by page visibility and window focus."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VisibilityState:
	is_visible: bool = True
	tab_switch_count: int = 0
	is_test_disabled: bool = False

	def as_dict(self) -> dict:
		return {
			"isVisible": self.is_visible,
			"tabSwitchCount": self.tab_switch_count,
			"isTestDisabled": self.is_test_disabled,
		}


class VisibilityMonitor:
	"""Two-state machine: armed until the student leaves the page, then disabled.

	A single physical tab switch usually fires both a visibility change and a
	window blur. Only the first of the pair counts, since the second one
	arrives while the page is already marked hidden. Once disabled the counter
	stays where it is; only ``reset`` re-arms the monitor.
	"""

	def __init__(self, enabled: bool = True) -> None:
		self.enabled = enabled
		self._state = VisibilityState()

	@property
	def state(self) -> VisibilityState:
		return self._state

	@property
	def is_visible(self) -> bool:
		return self._state.is_visible

	@property
	def tab_switch_count(self) -> int:
		return self._state.tab_switch_count

	@property
	def is_test_disabled(self) -> bool:
		return self._state.is_test_disabled

	def set_enabled(self, enabled: bool) -> None:
		self.enabled = enabled

	def on_visibility_change(self, visible: bool) -> VisibilityState:
		if not self.enabled:
			return self._state
		if visible:
			self._state = VisibilityState(True, self._state.tab_switch_count, self._state.is_test_disabled)
			return self._state
		return self._leave_foreground()

	def on_window_blur(self) -> VisibilityState:
		if not self.enabled:
			return self._state
		return self._leave_foreground()

	def on_window_focus(self) -> VisibilityState:
		return self.on_visibility_change(True)

	def reset(self) -> VisibilityState:
		self._state = VisibilityState()
		return self._state

	def _leave_foreground(self) -> VisibilityState:
		prev = self._state
		if not prev.is_visible or prev.is_test_disabled:
			self._state = VisibilityState(False, prev.tab_switch_count, prev.is_test_disabled)
			return self._state
		self._state = VisibilityState(False, prev.tab_switch_count + 1, True)
		return self._state

	def snapshot(self) -> dict:
		return self._state.as_dict()
