# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
The capability contract shared by all archive writers.

A writer accepts directories, in-memory bytes and files from disk, each
written once at a target path relative to the archive root. Writers never
update or delete an entry. `finish()` closes the underlying resource and is
the only way to obtain a usable output.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePath
from typing import Protocol, Union

from wheelwright.errors import WheelwrightError, io_error

logger = logging.getLogger(__name__)

StrPath = Union[str, os.PathLike]

# Regular, non-executable file (the zip default).
DEFAULT_PERMISSIONS = 0o644
EXECUTABLE_PERMISSIONS = 0o755
# What open() uses when the platform has no mode bits to honor.
PLATFORM_DEFAULT_MODE = 0o666


def _supports_mode_bits() -> bool:
	return os.name == "posix"


_MODE_BITS = _supports_mode_bits()


def creation_mode(permissions: int) -> int:
	"""Mode to create a file with: the requested bits on posix, the default elsewhere."""
	if _MODE_BITS:
		return permissions
	return PLATFORM_DEFAULT_MODE


def to_archive_path(target: StrPath) -> str:
	"""Forward-slash form of `target`; archives mandate unix style separators."""
	return PurePath(target).as_posix().replace("\\", "/")


class ModuleWriter(Protocol):
	def add_directory(self, path: StrPath) -> None: ...

	def add_bytes(self, target: StrPath, data: bytes) -> None: ...

	def add_bytes_with_permissions(self, target: StrPath, data: bytes, permissions: int) -> None: ...

	def add_file(self, target: StrPath, source: StrPath) -> None: ...

	def add_file_with_permissions(self, target: StrPath, source: StrPath, permissions: int) -> None: ...


class WriterDefaults:
	"""
	Default methods layered over `add_bytes_with_permissions`.

	Concrete writers implement `add_directory` and `add_bytes_with_permissions`
	and may override the file variants when they can stream.
	"""

	_finished: bool = False

	def _ensure_open(self) -> None:
		if self._finished:
			raise WheelwrightError(reason_code="WRITER_FINISHED", message=f"{type(self).__name__} was already finished")

	def add_bytes_with_permissions(self, target: StrPath, data: bytes, permissions: int) -> None:
		raise NotImplementedError

	def add_bytes(self, target: StrPath, data: bytes) -> None:
		logger.debug("Adding %s", target)
		self.add_bytes_with_permissions(target, data, DEFAULT_PERMISSIONS)

	def add_file(self, target: StrPath, source: StrPath) -> None:
		self.add_file_with_permissions(target, source, DEFAULT_PERMISSIONS)

	def add_file_with_permissions(self, target: StrPath, source: StrPath, permissions: int) -> None:
		logger.debug("Adding %s from %s", target, source)
		try:
			data = Path(source).read_bytes()
		except OSError as err:
			raise io_error(f"Failed to read {source}", path=target, source_path=source) from err
		try:
			self.add_bytes_with_permissions(target, data, permissions)
		except OSError as err:
			raise io_error(f"Failed to write to {target}", path=target, source_path=source) from err
