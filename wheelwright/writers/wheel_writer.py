# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Wheel (.whl) writer.

A wheel is a zip with a .dist-info directory whose RECORD lists the hash and
size of every other entry (PEP 427).
"""

from __future__ import annotations

import contextlib
import logging
import stat
import sys
import zipfile
from pathlib import Path

from wheelwright.config import WriterConfig
from wheelwright.dist_info import write_dist_info
from wheelwright.errors import io_error
from wheelwright.excludes import ExclusionFilter, ExclusionRuleSet
from wheelwright.metadata import Metadata, ProjectLayout
from wheelwright.writers.base import DEFAULT_PERMISSIONS, StrPath, WriterDefaults, to_archive_path
from wheelwright.writers.record import IntegrityLedger

logger = logging.getLogger(__name__)

# Zip's earliest representable time; keeps wheels byte-for-byte reproducible.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_ZIP_UNIX = 3


def _zipinfo(name: str, permissions: int, compression: int) -> zipfile.ZipInfo:
	zi = zipfile.ZipInfo(filename=name, date_time=_ZIP_EPOCH)
	zi.compress_type = compression
	zi.create_system = _ZIP_UNIX
	zi.external_attr = (stat.S_IFREG | permissions) << 16
	return zi


class WheelWriter(WriterDefaults):
	"""A zip builder that keeps the RECORD of everything written into it."""

	def __init__(
		self,
		tag: str,
		wheel_dir: StrPath,
		metadata: Metadata,
		tags: list[str],
		excludes: ExclusionRuleSet | None = None,
		config: WriterConfig | None = None,
	) -> None:
		"""
		Create the wheel file and write the .dist-info directory into it.

		RECORD is only written by `finish()`.
		"""
		self.config = config or WriterConfig()
		self.wheel_path = Path(wheel_dir) / (
			f"{metadata.get_distribution_escaped()}-{metadata.get_version_escaped()}-{tag}.whl"
		)
		self.record = IntegrityLedger()
		self.record_file = to_archive_path(metadata.get_dist_info_dir() / "RECORD")
		self.excludes = ExclusionFilter(excludes)
		self._finished = False
		try:
			self.zip = zipfile.ZipFile(self.wheel_path, mode="w")
		except OSError as err:
			raise io_error(f"Failed to create wheel at {self.wheel_path}", path=self.wheel_path) from err

		try:
			write_dist_info(self, metadata, tags)
		except Exception:
			self.abort()
			raise

	def exclude(self, path: StrPath) -> bool:
		return self.excludes.excluded(path)

	def add_directory(self, path: StrPath) -> None:
		# Zip archives infer directories from entry names.
		self._ensure_open()

	def add_bytes_with_permissions(self, target: StrPath, data: bytes, permissions: int) -> None:
		self._ensure_open()
		if self.exclude(target):
			logger.debug("Excluding %s", target)
			return
		name = to_archive_path(target)
		try:
			self.zip.writestr(_zipinfo(name, permissions, self.config.zip_compression), data)
		except OSError as err:
			raise io_error(f"Failed to add {len(data)} bytes to wheel as {name}", path=name) from err
		self.record.add(name, data)

	def add_pth(self, project_layout: ProjectLayout, metadata: Metadata) -> None:
		"""Add a .pth file at the wheel root pointing at the python sources, for editable installs."""
		if project_layout.python_module is None:
			return
		python_path = str(Path(project_layout.python_module).resolve().parent)
		try:
			payload = python_path.encode("utf-8")
		except UnicodeEncodeError:
			print(
				"warning: source code path contains non-Unicode sequences, editable installs may not work.",
				file=sys.stderr,
			)
			return
		target = f"{metadata.get_distribution_escaped()}.pth"
		logger.debug("Adding %s from %s", target, python_path)
		self.add_bytes(target, payload)

	def finish(self) -> Path:
		"""Write RECORD, close the zip and return the wheel's path."""
		self._ensure_open()
		logger.debug("Adding %s", self.record_file)
		record = self.record.render(self.record_file).encode("utf-8")
		self.zip.writestr(_zipinfo(self.record_file, DEFAULT_PERMISSIONS, self.config.zip_compression), record)
		self.zip.close()
		self._finished = True
		return self.wheel_path

	def abort(self) -> None:
		"""Close and delete a wheel that will not be finished; later writes are rejected."""
		self._finished = True
		logger.debug("Removing partial wheel %s", self.wheel_path)
		with contextlib.suppress(OSError):
			self.zip.close()
		self.wheel_path.unlink(missing_ok=True)
