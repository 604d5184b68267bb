# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from wheelwright.errors import io_error
from wheelwright.metadata import Metadata
from wheelwright.writers.base import StrPath, WriterDefaults, creation_mode, to_archive_path
from wheelwright.writers.record import IntegrityLedger

logger = logging.getLogger(__name__)

_OPEN_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)


class PathWriter(WriterDefaults):
	"""
	Writes a module straight into a directory, e.g. a virtualenv's site-packages.

	Nothing is filtered: every write of an in-place install is intentional.
	"""

	def __init__(self, base_path: StrPath) -> None:
		self.base_path = Path(base_path)
		self.record = IntegrityLedger()
		self._finished = False

	@classmethod
	def from_path(cls, path: StrPath) -> "PathWriter":
		return cls(path)

	def delete_dir(self, relative: StrPath) -> None:
		"""
		Remove a directory below the base path if it exists.

		Clears what an earlier in-place install left behind.
		"""
		absolute = self.base_path / relative
		if not absolute.exists():
			return
		try:
			shutil.rmtree(absolute)
		except OSError as err:
			raise io_error(f"Failed to remove {absolute}", path=absolute) from err

	def add_directory(self, path: StrPath) -> None:
		self._ensure_open()
		target = self.base_path / path
		logger.debug("Adding directory %s", target)
		try:
			target.mkdir(parents=True, exist_ok=True)
		except OSError as err:
			raise io_error(f"Failed to create directory {target}", path=target) from err

	def add_bytes_with_permissions(self, target: StrPath, data: bytes, permissions: int) -> None:
		self._ensure_open()
		path = self.base_path / target
		try:
			path.parent.mkdir(parents=True, exist_ok=True)
		except OSError as err:
			raise io_error(f"Failed to create directory {path.parent}", path=path.parent) from err
		try:
			fd = os.open(path, _OPEN_FLAGS, creation_mode(permissions))
		except OSError as err:
			raise io_error(f"Failed to create a file at {path}", path=path) from err
		try:
			with os.fdopen(fd, "wb") as f:
				f.write(data)
		except OSError as err:
			raise io_error(f"Failed to write to file at {path}", path=path) from err

		self.record.add(to_archive_path(target), data)

	def finish(self, metadata: Metadata) -> Path:
		"""Write RECORD after everything else has been written."""
		self._ensure_open()
		record_rel = to_archive_path(metadata.get_dist_info_dir() / "RECORD")
		record_file = self.base_path / record_rel
		try:
			record_file.parent.mkdir(parents=True, exist_ok=True)
			record_file.write_text(self.record.render(record_rel), encoding="utf-8", newline="")
		except OSError as err:
			raise io_error(f"Failed to write to file at {record_file}", path=record_file) from err
		self._finished = True
		return self.base_path
