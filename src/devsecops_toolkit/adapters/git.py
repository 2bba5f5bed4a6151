"""git adapter used by the repository audit."""

from __future__ import annotations

from pathlib import Path
from typing import List

from .runner import ToolAdapter


class GitAdapter(ToolAdapter):
    tool_name = "git"

    def recent_commits(self, working_dir: Path, *, count: int = 10) -> List[str]:
        """Return ``git log --oneline`` lines, or an empty list outside a repository."""

        completed = self._run("log", "--oneline", f"-{count}", cwd=working_dir, check=False)
        if completed.returncode != 0:
            return []
        return [line for line in (completed.stdout or "").splitlines() if line.strip()]
