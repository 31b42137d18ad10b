# progress.py
"""
Progress reporters for the per-individual loop.

Anything with ``start(total)``, ``advance(individual_id)`` and ``close()``
works; reporting never affects results.
"""
from __future__ import annotations

from typing import Any, Optional

from tqdm import tqdm


class NullProgress:
    """Reports nothing."""

    def start(self, total: int) -> None:
        pass

    def advance(self, individual_id: Any = None) -> None:
        pass

    def close(self) -> None:
        pass


class TqdmProgress:
    """Progress bar over individuals, written to stderr."""

    def __init__(self, desc: str = "Cumulative MCPs", **tqdm_kwargs):
        self.desc = desc
        self.tqdm_kwargs = tqdm_kwargs
        self._bar: Optional[tqdm] = None

    def start(self, total: int) -> None:
        if self._bar is None:
            self._bar = tqdm(total=total, desc=self.desc, unit="id", **self.tqdm_kwargs)
        else:
            self._bar.reset(total=total)

    def advance(self, individual_id: Any = None) -> None:
        if self._bar is None:
            return
        if individual_id is not None:
            self._bar.set_postfix_str(str(individual_id), refresh=False)
        self._bar.update(1)

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
