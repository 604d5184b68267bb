# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import zipfile
from dataclasses import dataclass
from enum import Enum


class Compression(Enum):
	DEFLATED = zipfile.ZIP_DEFLATED
	# No compression: pip still has to unpack every test wheel, so iterative
	# test builds skip deflate.
	STORED = zipfile.ZIP_STORED


@dataclass(frozen=True)
class WriterConfig:
	"""Build-time settings handed to archive writers at construction."""

	compression: Compression = Compression.DEFLATED

	@classmethod
	def fast(cls) -> "WriterConfig":
		return cls(compression=Compression.STORED)

	@property
	def zip_compression(self) -> int:
		return self.compression.value
