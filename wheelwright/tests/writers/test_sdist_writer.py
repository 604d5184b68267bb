# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import os
import tarfile
from pathlib import Path

import pytest

from wheelwright.excludes import ExclusionRuleSet
from wheelwright.metadata import Metadata
from wheelwright.writers.sdist_writer import SDistWriter


def _metadata() -> Metadata:
	return Metadata(name="pkg", version="1.0.0")


def test_sdist_writer_without_excludes(tmp_path: Path) -> None:
	writer = SDistWriter(tmp_path, _metadata())
	assert not writer.files
	writer.add_bytes_with_permissions("test", b"", 0o777)
	assert len(writer.files) == 1
	path = writer.finish()
	assert path == tmp_path / "pkg-1.0.0.tar.gz"
	with tarfile.open(path, "r:gz") as tf:
		assert tf.getnames() == ["test"]
		assert tf.getmember("test").mode == 0o777


def test_sdist_writer_excludes(tmp_path: Path) -> None:
	writer = SDistWriter(tmp_path, _metadata(), ExclusionRuleSet(["test*", "!test2"]))
	writer.add_bytes_with_permissions("test1", b"", 0o777)
	writer.add_bytes_with_permissions("test3", b"", 0o777)
	assert not writer.files
	writer.add_bytes_with_permissions("test2", b"", 0o777)
	assert writer.files
	writer.add_bytes_with_permissions("yes", b"", 0o777)
	assert len(writer.files) == 2
	with tarfile.open(writer.finish(), "r:gz") as tf:
		assert sorted(tf.getnames()) == ["test2", "yes"]


def test_duplicate_targets_keep_first_content(tmp_path: Path) -> None:
	src = tmp_path / "second.txt"
	src.write_bytes(b"second")
	out = tmp_path / "out"
	out.mkdir()
	writer = SDistWriter(out, _metadata())
	writer.add_bytes("pkg-1.0.0/README", b"first")
	writer.add_bytes("pkg-1.0.0/README", b"again")
	writer.add_file("pkg-1.0.0/README", src)
	with tarfile.open(writer.finish(), "r:gz") as tf:
		assert tf.getnames() == ["pkg-1.0.0/README"]
		f = tf.extractfile("pkg-1.0.0/README")
		assert f is not None
		assert f.read() == b"first"


def test_including_the_output_tarball_is_skipped_with_warning(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
	writer = SDistWriter(tmp_path, _metadata())
	writer.add_file("pkg-1.0.0/pkg-1.0.0.tar.gz", writer.path)
	assert not writer.files
	assert "into itself" in capsys.readouterr().err
	with tarfile.open(writer.finish(), "r:gz") as tf:
		assert tf.getnames() == []


def test_add_file_streams_content_with_size(tmp_path: Path) -> None:
	src = tmp_path / "lib.rs"
	payload = b"fn main() {}\n" * 100
	src.write_bytes(payload)
	out = tmp_path / "out"
	out.mkdir()
	writer = SDistWriter(out, _metadata())
	writer.add_file("pkg-1.0.0/src/lib.rs", src)
	with tarfile.open(writer.finish(), "r:gz") as tf:
		member = tf.getmember("pkg-1.0.0/src/lib.rs")
		assert member.size == len(payload)
		f = tf.extractfile(member)
		assert f is not None
		assert f.read() == payload


@pytest.mark.skipif(os.name != "posix", reason="unix permissions")
def test_add_file_keeps_mode_unless_permissions_given(tmp_path: Path) -> None:
	script = tmp_path / "run.sh"
	script.write_text("#!/bin/sh\n", encoding="utf-8")
	script.chmod(0o755)
	out = tmp_path / "out"
	out.mkdir()
	writer = SDistWriter(out, _metadata())
	writer.add_file("pkg-1.0.0/run.sh", script)
	writer.add_file_with_permissions("pkg-1.0.0/run-ro.sh", script, 0o644)
	with tarfile.open(writer.finish(), "r:gz") as tf:
		assert tf.getmember("pkg-1.0.0/run.sh").mode == 0o755
		assert tf.getmember("pkg-1.0.0/run-ro.sh").mode == 0o644


def test_add_file_excludes_by_source_path(tmp_path: Path) -> None:
	(tmp_path / "keep.py").write_text("", encoding="utf-8")
	(tmp_path / "drop.log").write_text("", encoding="utf-8")
	out = tmp_path / "out"
	out.mkdir()
	writer = SDistWriter(out, _metadata(), ExclusionRuleSet(["*.log"], root=tmp_path))
	writer.add_file("pkg-1.0.0/keep.py", tmp_path / "keep.py")
	writer.add_file("pkg-1.0.0/drop.log", tmp_path / "drop.log")
	with tarfile.open(writer.finish(), "r:gz") as tf:
		assert tf.getnames() == ["pkg-1.0.0/keep.py"]


def test_abort_removes_the_partial_tarball(tmp_path: Path) -> None:
	writer = SDistWriter(tmp_path, _metadata())
	writer.add_bytes("pkg-1.0.0/PKG-INFO", b"Metadata-Version: 2.1\n")
	writer.abort()
	assert not writer.path.exists()
	assert list(tmp_path.iterdir()) == []
