# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source distribution (.tar.gz) writer.

A target path is written at most once; later writes of the same path are
dropped so overlapping file discovery passes need no coordination. There is
no RECORD: the tar stream itself is the complete listing.
"""

from __future__ import annotations

import contextlib
import io
import logging
import sys
import tarfile
from pathlib import Path

from wheelwright.errors import io_error
from wheelwright.excludes import ExclusionFilter, ExclusionRuleSet
from wheelwright.metadata import Metadata
from wheelwright.writers.base import StrPath, WriterDefaults, to_archive_path

logger = logging.getLogger(__name__)


class SDistWriter(WriterDefaults):
	def __init__(self, wheel_dir: StrPath, metadata: Metadata, excludes: ExclusionRuleSet | None = None) -> None:
		self.path = Path(wheel_dir) / (
			f"{metadata.get_distribution_escaped()}-{metadata.get_version_escaped()}.tar.gz"
		)
		self.files: set[str] = set()
		self.excludes = ExclusionFilter(excludes)
		self._finished = False
		try:
			self.tar = tarfile.open(self.path, mode="w:gz", format=tarfile.GNU_FORMAT, dereference=True)
		except OSError as err:
			raise io_error(f"Failed to create sdist at {self.path}", path=self.path) from err

	def exclude(self, path: StrPath) -> bool:
		return self.excludes.excluded(path)

	def add_directory(self, path: StrPath) -> None:
		self._ensure_open()

	def add_bytes_with_permissions(self, target: StrPath, data: bytes, permissions: int) -> None:
		self._ensure_open()
		if self.exclude(target):
			return
		name = to_archive_path(target)
		if name in self.files:
			# First writer wins.
			return
		info = tarfile.TarInfo(name)
		info.size = len(data)
		info.mode = permissions
		try:
			self.tar.addfile(info, io.BytesIO(data))
		except OSError as err:
			raise io_error(f"Failed to add {len(data)} bytes to sdist as {name}", path=name) from err
		self.files.add(name)

	def add_file(self, target: StrPath, source: StrPath) -> None:
		"""Stream `source` into the archive, keeping its on-disk mode."""
		self._append_file(target, source, None)

	def add_file_with_permissions(self, target: StrPath, source: StrPath, permissions: int) -> None:
		self._append_file(target, source, permissions)

	def _append_file(self, target: StrPath, source: StrPath, permissions: int | None) -> None:
		self._ensure_open()
		source = Path(source)
		if self.exclude(source):
			return
		name = to_archive_path(target)
		if source.resolve() == self.path.resolve():
			print(
				f"warning: attempting to include the sdist output tarball {source} into itself; skipping it.",
				file=sys.stderr,
			)
			return
		if name in self.files:
			return
		logger.debug("Adding %s from %s", name, source)

		try:
			info = self.tar.gettarinfo(str(source), arcname=name)
			f = source.open("rb")
		except OSError as err:
			raise io_error(f"Failed to read {source}", path=name, source_path=source) from err
		if permissions is not None:
			info.mode = permissions
		with f:
			try:
				self.tar.addfile(info, f)
			except OSError as err:
				raise io_error(f"Failed to add file from {source} to sdist as {name}", path=name, source_path=source) from err
		self.files.add(name)

	def finish(self) -> Path:
		"""Close the gzip stream and return the archive's path."""
		self._ensure_open()
		self.tar.close()
		self._finished = True
		return self.path

	def abort(self) -> None:
		"""Close and delete a tarball that will not be finished; later writes are rejected."""
		self._finished = True
		logger.debug("Removing partial sdist %s", self.path)
		with contextlib.suppress(OSError):
			self.tar.close()
		self.path.unlink(missing_ok=True)
