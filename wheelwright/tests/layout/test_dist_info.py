# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from pathlib import Path

import pytest

from wheelwright import __version__
from wheelwright.dist_info import entry_points_file, wheel_file, write_dist_info
from wheelwright.errors import WheelwrightError
from wheelwright.metadata import Metadata


def test_wheel_file_header_and_tags_in_given_order() -> None:
	assert wheel_file(["cp311-cp311-linux_x86_64", "cp311-abi3-linux_x86_64"]) == (
		"Wheel-Version: 1.0\n"
		f"Generator: wheelwright ({__version__})\n"
		"Root-Is-Purelib: false\n"
		"Tag: cp311-cp311-linux_x86_64\n"
		"Tag: cp311-abi3-linux_x86_64\n"
	)


def test_entry_points_keep_declared_order() -> None:
	meta = Metadata(
		name="pkg",
		version="1.0.0",
		scripts=[("zeta", "pkg:zeta"), ("alpha", "pkg:alpha")],
		gui_scripts=[("gui", "pkg.gui:main")],
		entry_points=[("pytest11", [("pkg", "pkg.plugin")]), ("aaa.group", [("x", "pkg:x")])],
	)
	assert entry_points_file(meta) == (
		"[console_scripts]\nzeta=pkg:zeta\nalpha=pkg:alpha\n"
		"[gui_scripts]\ngui=pkg.gui:main\n"
		"[pytest11]\npkg=pkg.plugin\n"
		"[aaa.group]\nx=pkg:x\n"
	)


def test_dist_info_files_are_written_in_order(tmp_path: Path, recording_writer) -> None:
	license_file = tmp_path / "LICENSE-MIT"
	license_file.write_text("MIT\n", encoding="utf-8")
	meta = Metadata(
		name="my-pkg",
		version="1.0.0",
		summary="A package",
		scripts=[("run", "my_pkg:run")],
		license_files=[license_file],
	)
	write_dist_info(recording_writer, meta, ["py3-none-any"])

	assert recording_writer.targets() == [
		"my_pkg-1.0.0.dist-info/METADATA",
		"my_pkg-1.0.0.dist-info/WHEEL",
		"my_pkg-1.0.0.dist-info/entry_points.txt",
		"my_pkg-1.0.0.dist-info/license_files/LICENSE-MIT",
	]
	metadata_text = recording_writer.get("my_pkg-1.0.0.dist-info/METADATA").data.decode("utf-8")
	assert metadata_text.startswith("Metadata-Version: 2.1\nName: my-pkg\nVersion: 1.0.0\n")
	assert "Summary: A package" in metadata_text
	assert recording_writer.get("my_pkg-1.0.0.dist-info/license_files/LICENSE-MIT").data == b"MIT\n"
	assert "my_pkg-1.0.0.dist-info/license_files" in recording_writer.directories


def test_entry_points_file_is_omitted_without_entry_points(recording_writer) -> None:
	write_dist_info(recording_writer, Metadata(name="pkg", version="1.0.0"), ["t1"])
	assert recording_writer.targets() == ["pkg-1.0.0.dist-info/METADATA", "pkg-1.0.0.dist-info/WHEEL"]


def test_license_file_without_name_is_rejected(recording_writer) -> None:
	meta = Metadata(name="pkg", version="1.0.0", license_files=[Path("/")])
	with pytest.raises(WheelwrightError) as excinfo:
		write_dist_info(recording_writer, meta, ["t1"])
	assert excinfo.value.reason_code == "MISSING_FILE_NAME"


def test_names_are_escaped_for_dist_info() -> None:
	meta = Metadata(name="My.Fancy--pkg", version="1.0.0-beta.1")
	assert meta.get_distribution_escaped() == "My_Fancy_pkg"
	assert str(meta.get_dist_info_dir()) == "My_Fancy_pkg-1.0.0_beta.1.dist-info"


def test_data_dir_uses_the_same_escaped_version_as_dist_info() -> None:
	meta = Metadata(name="my-pkg", version="1.0-beta")
	assert str(meta.get_dist_info_dir()) == "my_pkg-1.0_beta.dist-info"
	assert str(meta.get_data_dir()) == "my_pkg-1.0_beta.data"
