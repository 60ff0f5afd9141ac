# Overview: Post-commit side effects (audit, chat, notifications) run after the business transaction.

"""
Operations run in two phases:

1. Transactional phase: every row the operation owns is written and
   committed as one unit.
2. Post-commit phase: side effects queued on a PostCommitEffects list run
   one by one. Each commits on its own; a failure is logged, rolled back
   and dropped so the caller still sees the primary operation succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from flask import current_app

from ..extensions import db


@dataclass
class _Effect:
    name: str
    func: Callable[..., Any]
    args: tuple
    kwargs: dict


@dataclass
class PostCommitEffects:
    effects: list[_Effect] = field(default_factory=list)

    def add(self, name: str, func: Callable[..., Any], *args, **kwargs) -> None:
        self.effects.append(_Effect(name=name, func=func, args=args, kwargs=kwargs))

    def __len__(self) -> int:
        return len(self.effects)

    def run(self) -> int:
        """Run queued effects in order; returns how many failed."""
        failures = 0
        pending, self.effects = self.effects, []
        for effect in pending:
            try:
                effect.func(*effect.args, **effect.kwargs)
                db.session.commit()
            except Exception:
                db.session.rollback()
                failures += 1
                current_app.logger.exception("Post-commit effect %s failed", effect.name)
        return failures
