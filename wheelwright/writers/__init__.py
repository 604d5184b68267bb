# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Archive writers.

All three writers honor one contract (see `base.ModuleWriter`):
- `path_writer.PathWriter`: installs straight into a directory,
- `wheel_writer.WheelWriter`: a .whl zip with RECORD,
- `sdist_writer.SDistWriter`: a .tar.gz source distribution.
"""

from __future__ import annotations

__all__ = [
	"base",
	"path_writer",
	"record",
	"sdist_writer",
	"wheel_writer",
]
