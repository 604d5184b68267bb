# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass

import pytest

from wheelwright.writers.base import StrPath, WriterDefaults, to_archive_path


@dataclass
class WrittenEntry:
	target: str
	data: bytes
	permissions: int


class RecordingWriter(WriterDefaults):
	"""In-memory writer that keeps every call, in order."""

	def __init__(self) -> None:
		self.directories: list[str] = []
		self.entries: list[WrittenEntry] = []

	def add_directory(self, path: StrPath) -> None:
		self.directories.append(to_archive_path(path))

	def add_bytes_with_permissions(self, target: StrPath, data: bytes, permissions: int) -> None:
		self.entries.append(WrittenEntry(to_archive_path(target), bytes(data), permissions))

	def targets(self) -> list[str]:
		return [e.target for e in self.entries]

	def get(self, target: str) -> WrittenEntry:
		matches = [e for e in self.entries if e.target == target]
		assert len(matches) == 1, f"{target}: {self.targets()}"
		return matches[0]


@pytest.fixture
def recording_writer() -> RecordingWriter:
	return RecordingWriter()
