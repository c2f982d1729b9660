"""Path ignore filtering using the .gitignore files that govern a folder."""

from __future__ import annotations

from pathlib import Path

import pathspec

_ALWAYS_IGNORED = [".git/"]


def find_worktree_root(directory: Path) -> Path:
    """Nearest ancestor holding a ``.git`` entry, or ``directory`` itself."""
    for candidate in [directory, *directory.parents]:
        if (candidate / ".git").exists():
            return candidate
    return directory


class PathFilter:
    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self.worktree_root = find_worktree_root(directory)
        self._specs = self._build_specs()

    def _build_specs(self) -> list[tuple[Path, pathspec.GitIgnoreSpec]]:
        specs = [(self.worktree_root, pathspec.GitIgnoreSpec.from_lines(_ALWAYS_IGNORED))]

        try:
            relative = self.directory.relative_to(self.worktree_root)
        except ValueError:
            relative = Path()
        chain = [self.worktree_root]
        for part in relative.parts:
            chain.append(chain[-1] / part)

        for folder in chain:
            gitignore = folder / ".gitignore"
            if not gitignore.is_file():
                continue
            try:
                text = gitignore.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            lines = [
                line.strip()
                for line in text.splitlines()
                if line.strip() and not line.strip().startswith("#")
            ]
            if lines:
                specs.append((folder, pathspec.GitIgnoreSpec.from_lines(lines)))
        return specs

    def include(self, path: Path, is_dir: bool = False) -> bool:
        for base, spec in self._specs:
            try:
                rel = path.relative_to(base)
            except ValueError:
                continue
            rel_text = rel.as_posix()
            if is_dir:
                rel_text += "/"
            if spec.match_file(rel_text):
                return False
        return True
