# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
cffi declaration generation.

The C header of the crate (user supplied at `<target>/header.h`, otherwise
generated by cbindgen) is fed to cffi's recompiler inside the target
interpreter, which writes `ffi.py`. That file exposes an `ffi` object the
generated `__init__.py` uses to dlopen the shared library.

If cffi is missing and the interpreter runs inside a virtualenv, cffi is
installed with pip and generation is retried exactly once. Global
environments are never modified.
"""

from __future__ import annotations

import subprocess
import sys
import tempfile
import tomllib
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Sequence

import tomli_w

from wheelwright.errors import WheelwrightError, io_error

MISSING_CFFI_LINE = "ModuleNotFoundError: No module named 'cffi'"

PythonRunner = Callable[[Path, Sequence[str]], "subprocess.CompletedProcess[str]"]
HeaderGenerator = Callable[[Path, Path], Path]

_IN_VIRTUALENV_PROBE = "import sys\nprint(sys.base_prefix != sys.prefix)"


def call_python(python: Path, args: Sequence[str]) -> "subprocess.CompletedProcess[str]":
	"""Run `python` with `args`, capturing text output."""
	cmd = [str(python), *args]
	try:
		return subprocess.run(cmd, capture_output=True, text=True, encoding="utf-8", errors="replace", check=False)
	except OSError as err:
		raise WheelwrightError(
			reason_code="PYTHON_NOT_RUNNABLE",
			message=f"Failed to run python at {python}: {err}",
			path=str(python),
			command=cmd,
		) from err


def run_cbindgen(crate_dir: Path, out_dir: Path) -> Path:
	"""
	Generate `out_dir/header.h` with the cbindgen CLI.

	The crate's cbindgen.toml is honored except for settings the cffi header
	reader cannot parse: the language is forced to C, includes are dropped,
	and defines and the include guard are removed.
	"""
	config: dict = {}
	config_path = crate_dir / "cbindgen.toml"
	if config_path.is_file():
		print(
			"Using the existing cbindgen.toml configuration.\n"
			"Enforcing the following settings:\n"
			"  - language = \"C\"\n"
			"  - no_includes = true\n"
			"  - no include_guard (directives are not yet supported)\n"
			"  - no defines (directives are not yet supported)"
		)
		try:
			config = tomllib.loads(config_path.read_text(encoding="utf-8"))
		except (OSError, tomllib.TOMLDecodeError) as err:
			raise WheelwrightError(
				reason_code="HEADER_GENERATION_FAILED",
				message=f"Failed to read {config_path}: {err}",
				path=str(config_path),
			) from err
	config.pop("defines", None)
	config.pop("include_guard", None)
	config["language"] = "C"
	config["no_includes"] = True

	sanitized = out_dir / "cbindgen.toml"
	try:
		sanitized.write_text(tomli_w.dumps(config), encoding="utf-8")
	except OSError as err:
		raise io_error(f"Failed to write to {sanitized}", path=sanitized) from err
	header = out_dir / "header.h"
	cmd = ["cbindgen", "--config", str(sanitized), "--lang", "c", "--output", str(header), str(crate_dir)]
	try:
		res = subprocess.run(cmd, capture_output=True, text=True, check=False)
	except OSError as err:
		raise WheelwrightError(
			reason_code="HEADER_GENERATION_FAILED",
			message=f"Failed to run cbindgen: {err}",
			command=cmd,
		) from err
	if res.returncode != 0:
		raise WheelwrightError(
			reason_code="HEADER_GENERATION_FAILED",
			message="Failed to run cbindgen",
			command=cmd,
			returncode=res.returncode,
			stdout=res.stdout,
			stderr=res.stderr,
		)
	return header


def cffi_header(crate_dir: Path, target_dir: Path, tempdir: Path, header_generator: HeaderGenerator = run_cbindgen) -> Path:
	"""Use `target_dir/header.h` when the user provides one, otherwise generate it."""
	maybe_header = target_dir / "header.h"
	if maybe_header.is_file():
		print(f"Using the existing header at {maybe_header}")
		return maybe_header
	return header_generator(crate_dir, tempdir)


def cffi_invocation(header: Path, ffi_py: Path) -> str:
	# repr() keeps windows paths like C:\Users\... from turning into escapes.
	return (
		"import cffi\n"
		"from cffi import recompiler\n"
		"\n"
		"ffi = cffi.FFI()\n"
		f"with open({str(header)!r}) as header:\n"
		"    ffi.cdef(header.read())\n"
		f"recompiler.make_py_source(ffi, \"ffi\", {str(ffi_py)!r})\n"
	)


class Step(Enum):
	HAVE_HEADER = auto()
	GENERATE = auto()
	MISSING_DEPENDENCY = auto()
	INSTALL_DEPENDENCY = auto()
	RETRY_GENERATE = auto()
	SUCCESS = auto()
	FAIL = auto()


def _last_line(text: str) -> str:
	lines = text.splitlines()
	return lines[-1] if lines else ""


class DeclarationGenerator:
	"""
	Drives the target interpreter through header -> ffi.py generation.

	Transitions:
	  HAVE_HEADER -> GENERATE
	  GENERATE -> SUCCESS | MISSING_DEPENDENCY | FAIL
	  MISSING_DEPENDENCY -> INSTALL_DEPENDENCY (inside a virtualenv) | error
	  INSTALL_DEPENDENCY -> RETRY_GENERATE | error
	  RETRY_GENERATE -> SUCCESS | FAIL
	"""

	def __init__(
		self,
		crate_dir: Path,
		target_dir: Path,
		python: Path,
		*,
		runner: PythonRunner = call_python,
		header_generator: HeaderGenerator = run_cbindgen,
	) -> None:
		self.crate_dir = crate_dir
		self.target_dir = target_dir
		self.python = python
		self.runner = runner
		self.header_generator = header_generator
		self.history: list[Step] = []

	def run(self) -> str:
		with tempfile.TemporaryDirectory() as tmp:
			return self._run(Path(tmp))

	def _run(self, tmp: Path) -> str:
		ffi_py = tmp / "ffi.py"
		invocation = ""
		output: subprocess.CompletedProcess[str] | None = None
		step = Step.HAVE_HEADER
		while True:
			self.history.append(step)
			if step is Step.HAVE_HEADER:
				header = cffi_header(self.crate_dir, self.target_dir, tmp, self.header_generator)
				invocation = cffi_invocation(header, ffi_py)
				step = Step.GENERATE
			elif step in (Step.GENERATE, Step.RETRY_GENERATE):
				output = self.runner(self.python, ["-c", invocation])
				if output.returncode == 0:
					step = Step.SUCCESS
				elif step is Step.GENERATE and _last_line(output.stderr or "") == MISSING_CFFI_LINE:
					step = Step.MISSING_DEPENDENCY
				else:
					step = Step.FAIL
			elif step is Step.MISSING_DEPENDENCY:
				if not self._in_virtualenv():
					raise WheelwrightError(
						reason_code="CFFI_NOT_INSTALLED",
						message=f"cffi is not installed for {self.python}, which is not inside a virtualenv. Please install cffi yourself.",
						path=str(self.python),
						stderr=output.stderr if output is not None else None,
					)
				step = Step.INSTALL_DEPENDENCY
			elif step is Step.INSTALL_DEPENDENCY:
				self._install_cffi()
				step = Step.RETRY_GENERATE
			elif step is Step.SUCCESS:
				assert output is not None
				# Forward cffi warnings.
				if output.stderr:
					sys.stderr.write(output.stderr)
				try:
					return ffi_py.read_text(encoding="utf-8")
				except OSError as err:
					raise io_error(f"Failed to read generated cffi declarations at {ffi_py}", source_path=ffi_py) from err
			else:
				assert output is not None
				raise WheelwrightError(
					reason_code="CFFI_GENERATION_FAILED",
					message=f"Failed to generate cffi declarations using {self.python}",
					path=str(self.python),
					returncode=output.returncode,
					stdout=output.stdout,
					stderr=output.stderr,
				)

	def _in_virtualenv(self) -> bool:
		output = self.runner(self.python, ["-c", _IN_VIRTUALENV_PROBE])
		answer = (output.stdout or "").strip()
		if answer == "True":
			return True
		if answer != "False":
			print(
				f"warning: failed to determine whether python at {self.python} is running inside a virtualenv",
				file=sys.stderr,
			)
		return False

	def _install_cffi(self) -> None:
		print("warning: cffi not found. Trying to install it", file=sys.stderr)
		# pip through the same interpreter so python and pip share an environment.
		args = ["-m", "pip", "install", "--disable-pip-version-check", "cffi"]
		output = self.runner(self.python, args)
		if output.returncode != 0:
			raise WheelwrightError(
				reason_code="CFFI_INSTALL_FAILED",
				message=f"Installing cffi with `{self.python} -m pip install cffi` failed. Please install cffi yourself.",
				path=str(self.python),
				command=[str(self.python), *args],
				returncode=output.returncode,
				stdout=output.stdout,
				stderr=output.stderr,
			)
		print("Installed cffi")


def generate_cffi_declarations(
	crate_dir: Path,
	target_dir: Path,
	python: Path,
	*,
	runner: PythonRunner = call_python,
	header_generator: HeaderGenerator = run_cbindgen,
) -> str:
	"""Return the content of what becomes ffi.py."""
	gen = DeclarationGenerator(crate_dir, target_dir, python, runner=runner, header_generator=header_generator)
	return gen.run()
