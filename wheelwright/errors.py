# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WheelwrightError(Exception):
	"""
	A structured error for wheelwright builds.

	Every fatal error carries enough path or subprocess context to diagnose
	the failure without re-running the build.
	"""

	reason_code: str
	message: str
	path: str | None = None
	source_path: str | None = None
	command: list[str] | None = None
	returncode: int | None = None
	stdout: str | None = None
	stderr: str | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"path": self.path,
			"source_path": self.source_path,
			"command": list(self.command) if self.command is not None else None,
			"returncode": self.returncode,
			"stdout": self.stdout,
			"stderr": self.stderr,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.path:
			parts.append(f"path={self.path}")
		if self.source_path:
			parts.append(f"source_path={self.source_path}")
		if self.command:
			parts.append(f"command={' '.join(self.command)}")
		if self.returncode is not None:
			parts.append(f"returncode={self.returncode}")
		text = " ".join(parts)
		if self.stdout is not None or self.stderr is not None:
			text += f"\n--- Stdout:\n{self.stdout or ''}\n--- Stderr:\n{self.stderr or ''}"
		return text


def io_error(message: str, *, path: object = None, source_path: object = None) -> WheelwrightError:
	return WheelwrightError(
		reason_code="IO_ERROR",
		message=message,
		path=str(path) if path is not None else None,
		source_path=str(source_path) if source_path is not None else None,
	)
