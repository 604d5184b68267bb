# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

from wheelwright.config import WriterConfig
from wheelwright.dist_info import write_dist_info
from wheelwright.errors import WheelwrightError
from wheelwright.excludes import ExclusionRuleSet
from wheelwright.layout import (
	add_data,
	walk_source_tree,
	write_bin,
	write_bindings_module,
	write_cffi_module,
	write_wasm_launcher,
)
from wheelwright.metadata import EntryPoints, Format, IncludePattern, Metadata, ProjectLayout, PythonInterpreter, Target
from wheelwright.writers.base import ModuleWriter
from wheelwright.writers.path_writer import PathWriter
from wheelwright.writers.sdist_writer import SDistWriter
from wheelwright.writers.wheel_writer import WheelWriter

BINDINGS = ("pyo3", "cffi", "bin", "wasm")


@dataclass(frozen=True)
class BuildOptions:
	"""Everything a wheel/develop build needs besides the writer."""

	bindings: str
	artifact: Path
	module_name: str
	python: Path
	crate_dir: Path
	target_dir: Path
	python_source: Path | None = None
	data: Path | None = None
	ext_suffix: str | None = None
	bin_name: str | None = None
	editable: bool = False
	excludes: list[str] = field(default_factory=list)
	include: list[IncludePattern] = field(default_factory=list)

	def project_layout(self) -> ProjectLayout:
		parts = self.module_name.split(".")
		if self.python_source is None:
			return ProjectLayout(rust_module=self.crate_dir, extension_name=parts[-1], data=self.data)
		# A single-part name is both the python package and the native module inside it.
		rust_parts = parts[:-1] if len(parts) > 1 else parts
		return ProjectLayout(
			rust_module=self.python_source.joinpath(*rust_parts),
			extension_name=parts[-1],
			python_module=self.python_source / parts[0],
			data=self.data,
		)

	def interpreter(self) -> PythonInterpreter | None:
		if self.ext_suffix is None:
			return None
		return PythonInterpreter(executable=self.python, ext_suffix=self.ext_suffix)


def _parse_entry_points(values: list[str] | None) -> EntryPoints:
	out: EntryPoints = []
	for value in values or []:
		key, sep, target = value.partition("=")
		if not sep or not key.strip() or not target.strip():
			raise ValueError(f"entry point must look like name=module:function, got: {value}")
		out.append((key.strip(), target.strip()))
	return out


def _add_metadata_args(p: argparse.ArgumentParser) -> None:
	p.add_argument("--name", required=True, help="Distribution name")
	p.add_argument("--version", required=True, help="Distribution version")
	p.add_argument("--summary", default=None, help="One-line summary for METADATA")
	p.add_argument("--out-dir", type=Path, default=Path("target") / "wheels", help="Output directory (default: ./target/wheels)")
	p.add_argument(
		"--exclude",
		action="append",
		default=None,
		help="gitignore-style exclusion rule (repeatable; prefix with ! to re-include)",
	)


def _add_module_args(p: argparse.ArgumentParser) -> None:
	p.add_argument("--bindings", choices=BINDINGS, default="pyo3", help="Binding style of the artifact")
	p.add_argument("--artifact", type=Path, required=True, help="Path to the built library or binary")
	p.add_argument("--module-name", default=None, help="Dotted python module name (default: --name)")
	p.add_argument("--python-source", type=Path, default=None, help="Directory holding the python package of a mixed project")
	p.add_argument(
		"--include",
		action="append",
		default=None,
		help="Extra glob, relative to --python-source, copied next to the python package (repeatable)",
	)
	p.add_argument("--data", type=Path, default=None, help="Data directory with data/scripts/headers/purelib/platlib")
	p.add_argument("--crate-dir", type=Path, default=Path("."), help="Crate directory (default: .)")
	p.add_argument("--target-dir", type=Path, default=Path("target"), help="Cargo target directory (default: ./target)")
	p.add_argument("--python", type=Path, default=Path(sys.executable), help="Target interpreter (default: this one)")
	p.add_argument("--ext-suffix", default=None, help="Interpreter EXT_SUFFIX; omitted means abi3")
	p.add_argument("--bin-name", default=None, help="Installed name of a bin/wasm artifact (default: artifact file name)")
	p.add_argument("--script", action="append", default=None, help="console_scripts entry point name=module:function")
	p.add_argument("--gui-script", action="append", default=None, help="gui_scripts entry point name=module:function")
	p.add_argument("--license-file", type=Path, action="append", default=None, help="License file to ship (repeatable)")


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="wheelwright", description="Assemble built extensions into wheels and sdists")
	p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
	sub = p.add_subparsers(dest="cmd", required=True)

	wheel = sub.add_parser("wheel", help="Build a wheel from a built artifact")
	_add_metadata_args(wheel)
	_add_module_args(wheel)
	wheel.add_argument("--tag", action="append", required=True, help="Compatibility tag (repeatable; the first names the file)")
	wheel.add_argument("--uncompressed", action="store_true", help="Store entries without compression (faster test builds)")
	wheel.add_argument("--editable", action="store_true", help="Build an editable wheel with a .pth file")

	sdist = sub.add_parser("sdist", help="Pack a source directory into a .tar.gz")
	_add_metadata_args(sdist)
	sdist.add_argument("--source-dir", type=Path, default=Path("."), help="Project root (default: .)")

	develop = sub.add_parser("develop", help="Install the module straight into a directory (e.g. site-packages)")
	_add_metadata_args(develop)
	_add_module_args(develop)
	develop.add_argument("--install-dir", type=Path, required=True, help="Directory to install into")
	develop.add_argument("--tag", action="append", default=None, help="Compatibility tag for WHEEL (repeatable)")
	return p


def _metadata_from_args(args: argparse.Namespace) -> Metadata:
	return Metadata(
		name=args.name,
		version=args.version,
		summary=args.summary,
		scripts=_parse_entry_points(getattr(args, "script", None)),
		gui_scripts=_parse_entry_points(getattr(args, "gui_script", None)),
		license_files=list(getattr(args, "license_file", None) or []),
	)


def _build_options_from_args(args: argparse.Namespace, *, editable: bool = False) -> BuildOptions:
	return BuildOptions(
		bindings=args.bindings,
		artifact=args.artifact,
		module_name=args.module_name or args.name.replace("-", "_"),
		python=args.python,
		crate_dir=args.crate_dir,
		target_dir=args.target_dir,
		python_source=args.python_source,
		data=args.data,
		ext_suffix=args.ext_suffix,
		bin_name=args.bin_name,
		editable=editable,
		excludes=list(args.exclude or []),
		include=[IncludePattern(p, frozenset({Format.SDIST, Format.WHEEL})) for p in args.include or []],
	)


def write_module(writer: ModuleWriter, opts: BuildOptions, metadata: Metadata) -> None:
	"""Dispatch on the binding style, then add the data directory."""
	layout = opts.project_layout()
	if opts.bindings == "pyo3":
		target = Target(is_unix=sys.platform != "win32")
		write_bindings_module(
			writer,
			layout,
			opts.module_name,
			opts.artifact,
			opts.interpreter(),
			target,
			opts.editable,
			opts.include,
		)
	elif opts.bindings == "cffi":
		write_cffi_module(
			writer,
			layout,
			opts.crate_dir,
			opts.target_dir,
			opts.module_name,
			opts.artifact,
			opts.python,
			opts.editable,
			opts.include,
		)
	else:
		bin_name = opts.bin_name or opts.artifact.name
		write_bin(writer, opts.artifact, metadata, bin_name)
		if opts.bindings == "wasm":
			write_wasm_launcher(writer, metadata, bin_name)
	add_data(writer, metadata, layout.data)


def build_wheel(args: argparse.Namespace) -> Path:
	metadata = _metadata_from_args(args)
	opts = _build_options_from_args(args, editable=bool(args.editable))
	excludes = ExclusionRuleSet(opts.excludes, root=Path.cwd()) if opts.excludes else None
	config = WriterConfig.fast() if args.uncompressed else WriterConfig()
	args.out_dir.mkdir(parents=True, exist_ok=True)
	writer = WheelWriter(args.tag[0], args.out_dir, metadata, list(args.tag), excludes, config)
	try:
		write_module(writer, opts, metadata)
		if opts.editable:
			writer.add_pth(opts.project_layout(), metadata)
		return writer.finish()
	except Exception:
		writer.abort()
		raise


def build_sdist(args: argparse.Namespace) -> Path:
	metadata = _metadata_from_args(args)
	source_dir: Path = args.source_dir.resolve()
	excludes = ExclusionRuleSet(args.exclude, root=source_dir) if args.exclude else None
	args.out_dir.mkdir(parents=True, exist_ok=True)
	writer = SDistWriter(args.out_dir, metadata, excludes)
	root = Path(f"{metadata.get_distribution_escaped()}-{metadata.get_version_escaped()}")
	try:
		writer.add_bytes(root / "PKG-INFO", metadata.to_file_contents().encode("utf-8"))
		for path in walk_source_tree(source_dir):
			if path.is_dir():
				writer.add_directory(root / path.relative_to(source_dir))
			else:
				writer.add_file(root / path.relative_to(source_dir), path)
		return writer.finish()
	except Exception:
		writer.abort()
		raise


def develop(args: argparse.Namespace) -> Path:
	metadata = _metadata_from_args(args)
	opts = _build_options_from_args(args)
	writer = PathWriter.from_path(args.install_dir)
	# Clear what a previous develop call installed before writing anything.
	writer.delete_dir(opts.module_name.split(".")[0])
	writer.delete_dir(metadata.get_dist_info_dir())
	write_dist_info(writer, metadata, list(args.tag or ["py3-none-any"]))
	write_module(writer, opts, metadata)
	return writer.finish(metadata)


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(levelname)s %(name)s: %(message)s",
	)

	try:
		if args.cmd == "wheel":
			print(build_wheel(args))
			return 0

		if args.cmd == "sdist":
			print(build_sdist(args))
			return 0

		if args.cmd == "develop":
			print(develop(args))
			return 0
	except WheelwrightError as err:
		print(err.format_human(), file=sys.stderr)
		return 2
	except ValueError as err:
		p.error(str(err))
		return 2

	raise AssertionError("unreachable")
