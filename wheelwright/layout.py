# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Where built artifacts land inside a wheel, sdist or in-place install.

One writer function per binding style:
- write_bindings_module: a native extension module (pyo3 / rust-cpython),
- write_cffi_module: a plain shared library plus cffi declarations,
- write_bin: a standalone executable in the wheel's scripts data directory,
- write_wasm_launcher: a python launcher running a wasm binary in wasmtime.

Plus the shared pieces: the python part of mixed projects and the optional
`.data` directory.
"""

from __future__ import annotations

import glob
import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Iterator, Sequence

from wheelwright.declarations import generate_cffi_declarations
from wheelwright.errors import WheelwrightError, io_error
from wheelwright.excludes import ExclusionRuleSet
from wheelwright.metadata import Format, IncludePattern, Metadata, ProjectLayout, PythonInterpreter, Target
from wheelwright.writers.base import EXECUTABLE_PERMISSIONS, ModuleWriter

logger = logging.getLogger(__name__)

DATA_DIR_NAMES = ("data", "scripts", "headers", "purelib", "platlib")
NATIVE_LIBRARY_SUFFIX = ".so"

CFFI_INIT_FILE = """__all__ = ["lib", "ffi"]

import os
from .ffi import ffi

lib = ffi.dlopen(os.path.join(os.path.dirname(__file__), 'native.so'))
del os
"""

WASM_LAUNCHER_TEMPLATE = """from pathlib import Path

from wasmtime import Store, Module, Engine, WasiConfig, Linker

import sysconfig

def main():
    # The actual executable
    program_location = Path(sysconfig.get_path("scripts")).joinpath("{bin_name}")
    # wasmtime-py boilerplate
    engine = Engine()
    store = Store(engine)
    wasi = WasiConfig()
    wasi.inherit_argv()
    wasi.inherit_env()
    wasi.inherit_stdout()
    wasi.inherit_stderr()
    wasi.inherit_stdin()
    wasi.preopen_dir(".", ".")
    store.set_wasi(wasi)
    linker = Linker(engine)
    linker.define_wasi()
    module = Module.from_file(store.engine, str(program_location))
    linking1 = linker.instantiate(store, module)
    start = linking1.exports(store).get("") or linking1.exports(store)["_start"]
    start(store)

if __name__ == '__main__':
    main()
"""


def reexport_init_file(module_name: str) -> str:
	"""__init__.py that makes the native module look like the top level package."""
	return (
		f"from .{module_name} import *\n"
		"\n"
		f"__doc__ = {module_name}.__doc__\n"
		f"if hasattr({module_name}, \"__all__\"):\n"
		f"    __all__ = {module_name}.__all__\n"
	)


def so_filename(ext_name: str, python_interpreter: PythonInterpreter | None, target: Target) -> str:
	if python_interpreter is not None:
		return python_interpreter.get_library_name(ext_name)
	# abi3; windows has no abi3 tag
	if target.is_unix:
		return f"{ext_name}.abi3.so"
	return f"{ext_name}.pyd"


def _copy(source: Path, target: Path) -> None:
	logger.debug("Copying %s to %s", source, target)
	try:
		shutil.copyfile(source, target)
	except OSError as err:
		raise io_error(f"Failed to copy {source} to {target}", path=target, source_path=source) from err


def _write_text(path: Path, text: str) -> None:
	try:
		path.write_text(text, encoding="utf-8")
	except OSError as err:
		raise io_error(f"Failed to write to file at {path}", path=path) from err


def _rust_module_relative(project_layout: ProjectLayout) -> Path:
	assert project_layout.python_module is not None
	return project_layout.rust_module.relative_to(project_layout.python_module.parent)


def _add_type_stub(writer: ModuleWriter, project_layout: ProjectLayout, module: Path, module_name: str) -> None:
	type_stub = project_layout.rust_module / f"{module_name}.pyi"
	if type_stub.exists():
		print(f"Found type stub file at {module_name}.pyi")
		writer.add_file(module / "__init__.pyi", type_stub)
		writer.add_bytes(module / "py.typed", b"")


def write_bindings_module(
	writer: ModuleWriter,
	project_layout: ProjectLayout,
	module_name: str,
	artifact: Path,
	python_interpreter: PythonInterpreter | None,
	target: Target,
	editable: bool,
	include: Sequence[IncludePattern] = (),
) -> None:
	"""Place the native extension; for mixed projects next to the python sources."""
	so_name = so_filename(project_layout.extension_name, python_interpreter, target)

	if project_layout.python_module is not None:
		if editable:
			dest = project_layout.rust_module / so_name
			# A running process may still map the old library; unlink instead of overwriting.
			logger.debug("Removing %s", dest)
			try:
				dest.unlink()
			except FileNotFoundError:
				pass
			except OSError as err:
				raise io_error(f"Failed to remove {dest}", path=dest) from err
			_copy(artifact, dest)
		else:
			write_python_part(writer, project_layout.python_module, include)
			relative = _rust_module_relative(project_layout)
			writer.add_file_with_permissions(relative / so_name, artifact, EXECUTABLE_PERMISSIONS)
		return

	module = Path(module_name)
	writer.add_directory(module)
	writer.add_bytes(module / "__init__.py", reexport_init_file(module_name).encode("utf-8"))
	_add_type_stub(writer, project_layout, module, module_name)
	writer.add_file_with_permissions(module / so_name, artifact, EXECUTABLE_PERMISSIONS)


def write_cffi_module(
	writer: ModuleWriter,
	project_layout: ProjectLayout,
	crate_dir: Path,
	target_dir: Path,
	module_name: str,
	artifact: Path,
	python: Path,
	editable: bool,
	include: Sequence[IncludePattern] = (),
	*,
	generate: Callable[[Path, Path, Path], str] = generate_cffi_declarations,
) -> None:
	"""Write the shared library as native.so together with ffi.py and the loader __init__.py."""
	cffi_declarations = generate(crate_dir, target_dir, python)

	if project_layout.python_module is not None:
		if editable:
			base_path = project_layout.python_module / module_name
			try:
				base_path.mkdir(parents=True, exist_ok=True)
			except OSError as err:
				raise io_error(f"Failed to create directory {base_path}", path=base_path) from err
			_copy(artifact, base_path / "native.so")
			_write_text(base_path / "__init__.py", CFFI_INIT_FILE)
			_write_text(base_path / "ffi.py", cffi_declarations)
			return
		write_python_part(writer, project_layout.python_module, include)
		module = _rust_module_relative(project_layout) / project_layout.extension_name
		writer.add_directory(module)
	else:
		module = Path(module_name)
		writer.add_directory(module)
		_add_type_stub(writer, project_layout, module, module_name)

	writer.add_bytes(module / "__init__.py", CFFI_INIT_FILE.encode("utf-8"))
	writer.add_bytes(module / "ffi.py", cffi_declarations.encode("utf-8"))
	writer.add_file_with_permissions(module / "native.so", artifact, EXECUTABLE_PERMISSIONS)


def write_bin(writer: ModuleWriter, artifact: Path, metadata: Metadata, bin_name: str) -> None:
	"""Add the binary to the scripts data directory, marked executable."""
	data_dir = metadata.get_data_dir() / "scripts"
	writer.add_directory(data_dir)
	writer.add_file_with_permissions(data_dir / bin_name, artifact, EXECUTABLE_PERMISSIONS)


def write_wasm_launcher(writer: ModuleWriter, metadata: Metadata, bin_name: str) -> None:
	"""
	Add a python script that runs the wasm binary through wasmtime.

	The wasm binary itself is written separately by write_bin.
	"""
	script = WASM_LAUNCHER_TEMPLATE.replace("{bin_name}", bin_name)
	launcher_path = Path(metadata.get_distribution_escaped()) / (bin_name.replace("-", "_") + ".py")
	writer.add_bytes_with_permissions(launcher_path, script.encode("utf-8"), EXECUTABLE_PERMISSIONS)


def _read_gitignore(directory: Path) -> ExclusionRuleSet | None:
	directory = Path(os.path.abspath(directory))
	path = directory / ".gitignore"
	if not path.is_file():
		return None
	try:
		lines = path.read_text(encoding="utf-8").splitlines()
	except OSError as err:
		raise io_error(f"Failed to read {path}", source_path=path) from err
	rules = [line.rstrip() for line in lines if line.strip() and not line.startswith("#")]
	return ExclusionRuleSet(rules, root=directory)


def _parent_gitignores(root: Path) -> list[ExclusionRuleSet]:
	"""Rule sets of the .gitignore files above `root`, outermost first, stopping at the repository root."""
	parents: list[Path] = []
	for parent in Path(os.path.abspath(root)).parents:
		parents.append(parent)
		if (parent / ".git").exists():
			break
	rule_sets = []
	for parent in reversed(parents):
		local = _read_gitignore(parent)
		if local is not None:
			rule_sets.append(local)
	return rule_sets


def _ignored(path: Path, is_dir: bool, rule_sets: list[ExclusionRuleSet]) -> bool:
	# The deepest .gitignore with a matching rule decides.
	for rule_set in reversed(rule_sets):
		rule = rule_set.matched(path, is_dir=is_dir)
		if rule is not None:
			return rule.exclude
	return False


def walk_source_tree(root: Path) -> Iterator[Path]:
	"""
	Yield everything below `root` in sorted order; hidden entries are kept.

	.gitignore files inside `root` and in its parent directories up to the
	repository root apply.
	"""

	def visit(directory: Path, rule_sets: list[ExclusionRuleSet]) -> Iterator[Path]:
		local = _read_gitignore(directory)
		if local is not None:
			rule_sets = rule_sets + [local]
		try:
			entries = sorted(directory.iterdir())
		except OSError as err:
			raise io_error(f"Failed to read directory {directory}", source_path=directory) from err
		for entry in entries:
			if entry.name == ".git":
				continue
			is_dir = entry.is_dir()
			if _ignored(Path(os.path.abspath(entry)), is_dir, rule_sets):
				continue
			yield entry
			if is_dir and not entry.is_symlink():
				yield from visit(entry, rule_sets)

	yield from visit(root, _parent_gitignores(root))


def write_python_part(
	writer: ModuleWriter,
	python_module: Path,
	include: Sequence[IncludePattern] = (),
	fmt: Format = Format.SDIST,
) -> None:
	"""Add the python package of a mixed project, plus files matched by `include`."""
	base = python_module.parent
	writer.add_directory(python_module.relative_to(base))
	for absolute in walk_source_tree(python_module):
		relative = absolute.relative_to(base)
		if absolute.is_dir():
			writer.add_directory(relative)
			continue
		# Native libraries left behind by an editable build are placed separately.
		if absolute.suffix == NATIVE_LIBRARY_SUFFIX:
			logger.debug("Ignoring native library %s", relative)
			continue
		writer.add_file(relative, absolute)

	for pattern in include:
		glob_pattern = pattern.targets(fmt)
		if glob_pattern is None:
			continue
		print(f"Including files matching \"{glob_pattern}\"")
		for match in sorted(glob.glob(str(base / glob_pattern), recursive=True)):
			source = Path(match)
			target = source.relative_to(base)
			if not source.is_dir():
				writer.add_file(target, source)
				continue
			writer.add_directory(target)
			for inner in walk_source_tree(source):
				if inner.is_dir():
					writer.add_directory(inner.relative_to(base))
				else:
					writer.add_file(inner.relative_to(base), inner)


def _data_files(subdir: Path) -> Iterator[tuple[Path, bool]]:
	for dirpath, dirnames, filenames in os.walk(subdir, followlinks=True):
		dirnames.sort()
		yield Path(dirpath), True
		for name in sorted(filenames):
			yield Path(dirpath) / name, False


def add_data(writer: ModuleWriter, metadata: Metadata, data: Path | None) -> None:
	"""
	Copy the data directory into `{dist}-{version}.data/`.

	Only the subdirectories of PEP 427 are allowed. Symlinks are replaced by
	the content they point to, so a data directory may be assembled from
	links into other generated outputs.
	"""
	if data is None:
		return
	prefix = metadata.get_data_dir()
	try:
		subdirs = sorted(data.iterdir())
	except OSError as err:
		raise io_error(f"Failed to read data dir {data}", source_path=data) from err
	for subdir in subdirs:
		if not subdir.is_dir() or subdir.name not in DATA_DIR_NAMES:
			raise WheelwrightError(
				reason_code="INVALID_DATA_DIR",
				message=f"Invalid data dir entry {subdir}. Possible are directories named {', '.join(DATA_DIR_NAMES)}",
				source_path=str(subdir),
			)

	for subdir in subdirs:
		logger.debug("Adding data from %s", subdir)
		for path, is_dir in _data_files(subdir):
			relative = prefix / path.relative_to(data)
			if is_dir:
				writer.add_directory(relative)
				continue
			source = path
			if path.is_symlink():
				try:
					source = path.resolve(strict=True)
				except (OSError, RuntimeError) as err:
					raise WheelwrightError(
						reason_code="UNSUPPORTED_DATA_ENTRY",
						message=f"Failed to resolve symlink {path} in data dir {data}",
						source_path=str(path),
					) from err
			if not source.is_file():
				raise WheelwrightError(
					reason_code="UNSUPPORTED_DATA_ENTRY",
					message=f"Can't handle data dir entry {path}",
					source_path=str(path),
				)
			writer.add_file(relative, source)
