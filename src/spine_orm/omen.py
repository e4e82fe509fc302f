"""Call-site capture for errors detected deep inside an operation.

An :class:`Omen` is taken at the top of every public model method, before
the first ``await``. Errors that are only discovered after several
suspension points (a uniqueness violation reported by the adapter, for
instance) are then attributed to the line of user code that started the
query instead of to the adapter plumbing.

The omen travels explicitly in :class:`~spine_orm.context.OperationContext`;
nothing is stored in globals or context variables.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from pathlib import Path

# Frames from these directories are library internals, not call sites.
_PACKAGE_DIR = str(Path(__file__).resolve().parent)


def _is_internal(frame: traceback.FrameSummary) -> bool:
    return str(Path(frame.filename).resolve()).startswith(_PACKAGE_DIR)


@dataclass(frozen=True)
class Omen:
    """Snapshot of the caller's stack at the moment a query was started."""

    stack: traceback.StackSummary

    @classmethod
    def capture(cls) -> Omen:
        frames = [f for f in traceback.extract_stack() if not _is_internal(f)]
        return cls(stack=traceback.StackSummary.from_list(frames))

    @property
    def call_site(self) -> traceback.FrameSummary | None:
        """Innermost user frame (the line that called the model method)."""
        return self.stack[-1] if self.stack else None

    def describe(self) -> str:
        site = self.call_site
        if site is None:
            return "<unknown call site>"
        return f'File "{site.filename}", line {site.lineno}, in {site.name}'

    def format(self) -> str:
        return "".join(self.stack.format())

    def attach(self, error: BaseException) -> BaseException:
        """Rebase *error* onto this call site.

        Sets ``error.omen`` and adds a note carrying the caller's stack, so
        the default traceback printout shows where the query came from.
        """
        error.omen = self  # type: ignore[attr-defined]
        error.add_note(f"Query originated at: {self.describe()}\n{self.format()}".rstrip())
        return error


__all__ = ["Omen"]
