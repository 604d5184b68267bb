# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
The RECORD ledger of a wheel or an installed distribution.

One line per written file, `path,sha256=<urlsafe-b64-nopad>,<size>`, in the
order the files were written. The RECORD file cannot hash itself, so its own
line comes last with empty hash and size fields.
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass


def record_hash(data: bytes) -> str:
	"""urlsafe base64 of the sha256 digest, without the trailing '=' padding (PEP 376)."""
	return base64.urlsafe_b64encode(hashlib.sha256(data).digest()).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class RecordEntry:
	path: str
	hash: str
	size: int

	def to_line(self) -> str:
		return f"{self.path},sha256={self.hash},{self.size}"


class IntegrityLedger:
	"""Append-only list of RecordEntry, serialized once at finalize time."""

	def __init__(self) -> None:
		self.entries: list[RecordEntry] = []

	def __len__(self) -> int:
		return len(self.entries)

	def add(self, path: str, data: bytes) -> RecordEntry:
		entry = RecordEntry(path=path, hash=record_hash(data), size=len(data))
		self.entries.append(entry)
		return entry

	def render(self, record_path: str) -> str:
		lines = [e.to_line() for e in self.entries]
		lines.append(f"{record_path},,")
		return "".join(line + "\n" for line in lines)
