# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
The .dist-info directory: METADATA, WHEEL, entry_points.txt and license files.

RECORD is not written here; each writer appends it when it is finished.
"""

from __future__ import annotations

from wheelwright import __version__
from wheelwright.errors import WheelwrightError
from wheelwright.metadata import EntryPoints, Metadata
from wheelwright.writers.base import ModuleWriter

GENERATOR_NAME = "wheelwright"


def wheel_file(tags: list[str]) -> str:
	text = (
		"Wheel-Version: 1.0\n"
		f"Generator: {GENERATOR_NAME} ({__version__})\n"
		"Root-Is-Purelib: false\n"
	)
	for tag in tags:
		text += f"Tag: {tag}\n"
	return text


def entry_points_txt(entry_type: str, entrypoints: EntryPoints) -> str:
	"""One INI section; https://packaging.python.org/specifications/entry-points/"""
	text = f"[{entry_type}]\n"
	for key, value in entrypoints:
		text += f"{key}={value}\n"
	return text


def entry_points_file(metadata: Metadata) -> str:
	text = ""
	if metadata.scripts:
		text += entry_points_txt("console_scripts", metadata.scripts)
	if metadata.gui_scripts:
		text += entry_points_txt("gui_scripts", metadata.gui_scripts)
	for entry_type, scripts in metadata.entry_points:
		text += entry_points_txt(entry_type, scripts)
	return text


def write_dist_info(writer: ModuleWriter, metadata: Metadata, tags: list[str]) -> None:
	dist_info_dir = metadata.get_dist_info_dir()

	writer.add_directory(dist_info_dir)
	writer.add_bytes(dist_info_dir / "METADATA", metadata.to_file_contents().encode("utf-8"))
	writer.add_bytes(dist_info_dir / "WHEEL", wheel_file(tags).encode("utf-8"))

	entry_points = entry_points_file(metadata)
	if entry_points:
		writer.add_bytes(dist_info_dir / "entry_points.txt", entry_points.encode("utf-8"))

	if metadata.license_files:
		license_files_dir = dist_info_dir / "license_files"
		writer.add_directory(license_files_dir)
		for path in metadata.license_files:
			if not path.name:
				raise WheelwrightError(
					reason_code="MISSING_FILE_NAME",
					message=f"missing file name for license file {path}",
					source_path=str(path),
				)
			writer.add_file(license_files_dir / path.name, path)
