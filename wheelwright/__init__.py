# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
wheelwright: assembles built extension artifacts into wheels, source
distributions and in-place installs.

Layers:
  writers:      archive backends (filesystem, wheel zip, sdist tar.gz)
  dist_info:    the .dist-info metadata directory
  layout:       where artifacts land for each binding style
  declarations: cffi declaration generation through a python subprocess
"""

__version__ = "0.14.0"

__all__ = ["writers", "dist_info", "layout", "declarations"]
