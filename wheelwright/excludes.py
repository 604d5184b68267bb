# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Path exclusion rules for packaged archives.

Rules use gitignore glob syntax. A plain rule excludes matching paths, a
rule prefixed with `!` re-includes them, and the last matching rule decides.
Rules without a `/` match at any depth; rules containing one are anchored at
the rule set's root.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path, PurePath, PurePosixPath
from typing import Iterable


def _glob_to_regex(glob: str) -> str:
	out: list[str] = []
	i = 0
	n = len(glob)
	while i < n:
		if glob.startswith("**/", i):
			out.append("(?:.*/)?")
			i += 3
		elif glob.startswith("**", i):
			out.append(".*")
			i += 2
		else:
			c = glob[i]
			i += 1
			if c == "*":
				out.append("[^/]*")
			elif c == "?":
				out.append("[^/]")
			elif c == "[":
				end = glob.find("]", i + 1 if i < n and glob[i] in "!^" else i)
				if end == -1:
					out.append(re.escape(c))
					continue
				body = glob[i:end]
				if body[:1] in ("!", "^"):
					body = "^" + body[1:]
				out.append("[" + body.replace("\\", "\\\\") + "]")
				i = end + 1
			elif c == "\\" and i < n:
				out.append(re.escape(glob[i]))
				i += 1
			else:
				out.append(re.escape(c))
	return "".join(out)


@dataclass(frozen=True)
class ExclusionRule:
	pattern: str
	exclude: bool
	dir_only: bool
	regex: re.Pattern[str]

	@classmethod
	def parse(cls, rule: str) -> "ExclusionRule":
		exclude = True
		text = rule
		if text.startswith("!"):
			exclude = False
			text = text[1:]
		elif text.startswith("\\!"):
			text = text[1:]
		dir_only = text.endswith("/")
		text = text.rstrip("/")
		if not text:
			raise ValueError(f"empty exclusion rule: {rule!r}")
		anchored = "/" in text
		text = text.lstrip("/")
		body = _glob_to_regex(text)
		if not anchored:
			body = "(?:.*/)?" + body
		return cls(pattern=rule, exclude=exclude, dir_only=dir_only, regex=re.compile(f"^{body}$"))

	def matches(self, rel: str, *, is_dir: bool) -> bool:
		if self.dir_only and not is_dir:
			return False
		return self.regex.match(rel) is not None


class ExclusionRuleSet:
	"""An ordered list of include/exclude rules rooted at a directory."""

	def __init__(self, rules: Iterable[str], root: Path | None = None) -> None:
		self.root = root
		self.rules: list[ExclusionRule] = [ExclusionRule.parse(r) for r in rules]

	def _relative(self, path: PurePath | str) -> str:
		p = PurePath(path)
		if self.root is not None:
			try:
				p = p.relative_to(self.root)
			except ValueError:
				pass
		rel = PurePosixPath(*p.parts).as_posix().replace("\\", "/")
		while rel.startswith("./"):
			rel = rel[2:]
		return rel

	def matched(self, path: PurePath | str, *, is_dir: bool = False) -> ExclusionRule | None:
		"""Return the last rule matching `path`, if any."""
		rel = self._relative(path)
		for rule in reversed(self.rules):
			if rule.matches(rel, is_dir=is_dir):
				return rule
		return None


class ExclusionFilter:
	"""Answers whether a path is excluded; with no rule set nothing is."""

	def __init__(self, rules: ExclusionRuleSet | None = None) -> None:
		self.rules = rules

	def excluded(self, path: PurePath | str) -> bool:
		if self.rules is None:
			return False
		rule = self.rules.matched(path)
		return rule is not None and rule.exclude
