# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Records handed to the assembly engine by its collaborators.

Parsing pyproject.toml/Cargo.toml, interpreter discovery and project layout
detection happen elsewhere; the engine only reads these pre-validated values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

EntryPoints = list[tuple[str, str]]


@dataclass(frozen=True)
class Metadata:
	"""
	Core metadata of a distribution (Metadata-Version 2.1).

	Entry points are ordered (key, value) pairs so entry_points.txt renders
	the same bytes on every build.
	"""

	name: str
	version: str
	summary: str | None = None
	description: str | None = None
	requires_python: str | None = None
	requires_dist: list[str] = field(default_factory=list)
	scripts: EntryPoints = field(default_factory=list)
	gui_scripts: EntryPoints = field(default_factory=list)
	entry_points: list[tuple[str, EntryPoints]] = field(default_factory=list)
	license_files: list[Path] = field(default_factory=list)

	def get_distribution_escaped(self) -> str:
		return re.sub(r"[-_.]+", "_", self.name)

	def get_version_escaped(self) -> str:
		return self.version.replace("-", "_")

	def get_dist_info_dir(self) -> Path:
		return Path(f"{self.get_distribution_escaped()}-{self.get_version_escaped()}.dist-info")

	def get_data_dir(self) -> Path:
		return Path(f"{self.get_distribution_escaped()}-{self.get_version_escaped()}.data")

	def to_file_contents(self) -> str:
		lines = [
			"Metadata-Version: 2.1",
			f"Name: {self.name}",
			f"Version: {self.version}",
		]
		if self.summary:
			lines.append(f"Summary: {self.summary}")
		if self.requires_python:
			lines.append(f"Requires-Python: {self.requires_python}")
		for req in self.requires_dist:
			lines.append(f"Requires-Dist: {req}")
		for path in self.license_files:
			lines.append(f"License-File: {path.name}")
		text = "\n".join(lines) + "\n"
		if self.description:
			text += "\n" + self.description
			if not self.description.endswith("\n"):
				text += "\n"
		return text


@dataclass(frozen=True)
class Target:
	is_unix: bool = True


@dataclass(frozen=True)
class PythonInterpreter:
	"""A probed interpreter; `ext_suffix` is its EXT_SUFFIX config var."""

	executable: Path
	ext_suffix: str

	def get_library_name(self, ext_name: str) -> str:
		return f"{ext_name}{self.ext_suffix}"


@dataclass(frozen=True)
class ProjectLayout:
	"""
	Where the sources of a project live.

	`python_module` is set for mixed projects (a python package next to the
	native module); `rust_module` is the directory the native module is placed
	in, which is inside `python_module` for mixed projects.
	"""

	rust_module: Path
	extension_name: str
	python_module: Path | None = None
	data: Path | None = None


class Format(Enum):
	SDIST = "sdist"
	WHEEL = "wheel"


@dataclass(frozen=True)
class IncludePattern:
	"""An extra glob (relative to the project root) and the formats it applies to."""

	path: str
	formats: frozenset[Format] = frozenset({Format.SDIST})

	def targets(self, fmt: Format) -> str | None:
		if fmt in self.formats:
			return self.path
		return None
