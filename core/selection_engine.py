"""
Selection Engine: the "pick a random student" state machine

Phases:
    IDLE ──start──> RUNNING ──(tick_count ticks, final draw)──> SETTLED
      ^                │                                           │
      └────reset───────┴──────────────────reset────────────────────┘

Rules:
- every draw (each tick and the final one) is uniform over the whole candidate
  list and independent of earlier draws; repeats while spinning are expected
- start with no candidates, or while RUNNING, is a no-op
- reset cancels pending ticks and the winner-ready delay immediately

Each run captures a generation number when it is armed. reset/start bump the
generation synchronously, so a late tick from an old run can never write into
a newer one even if its task has not yet observed the cancellation.
"""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from models import SelectionPhase

logger = logging.getLogger(__name__)

RunListener = Callable[["SelectionRun"], None]


@dataclass(frozen=True)
class SelectionConfig:
    """Animation pacing, in seconds"""

    tick_interval: float = 0.2
    tick_count: int = 20
    reveal_delay: float = 0.3

    def __post_init__(self) -> None:
        if self.tick_interval < 0 or self.reveal_delay < 0:
            raise ValueError("Selection delays must not be negative")
        if self.tick_count < 0:
            raise ValueError("tick_count must not be negative")

    @classmethod
    def from_settings(cls, settings) -> "SelectionConfig":
        return cls(
            tick_interval=settings.selection_tick_interval_ms / 1000,
            tick_count=settings.selection_tick_count,
            reveal_delay=settings.selection_reveal_delay_ms / 1000,
        )


@dataclass
class SelectionRun:
    """Transient state of one selection run (never persisted)"""

    candidates: Tuple[str, ...] = ()
    current_highlight: Optional[str] = None
    winner: Optional[str] = None
    phase: SelectionPhase = SelectionPhase.IDLE
    ticks: int = 0
    history: List[str] = field(default_factory=list)


class SelectionEngine:
    """Timed randomized pick over an ordered candidate list"""

    def __init__(
        self,
        config: Optional[SelectionConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or SelectionConfig()
        self._rng = rng or random.Random()
        self.run = SelectionRun()
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._highlight_listeners: List[RunListener] = []
        self._settled_listeners: List[RunListener] = []
        self._winner_ready_listeners: List[RunListener] = []
        self._change_listeners: List[RunListener] = []

    # ============ Listeners ============

    def on_highlight(self, listener: RunListener) -> None:
        self._highlight_listeners.append(listener)

    def on_settled(self, listener: RunListener) -> None:
        self._settled_listeners.append(listener)

    def on_winner_ready(self, listener: RunListener) -> None:
        self._winner_ready_listeners.append(listener)

    def on_change(self, listener: RunListener) -> None:
        """Called after every state change (start, tick, settle, reset)"""
        self._change_listeners.append(listener)

    def _emit(self, listeners: List[RunListener], run: SelectionRun) -> None:
        for listener in listeners:
            listener(run)
        for listener in self._change_listeners:
            listener(run)

    # ============ State ============

    @property
    def phase(self) -> SelectionPhase:
        return self.run.phase

    @property
    def current_highlight(self) -> Optional[str]:
        return self.run.current_highlight

    @property
    def winner(self) -> Optional[str]:
        return self.run.winner

    @property
    def is_running(self) -> bool:
        return self.run.phase is SelectionPhase.RUNNING

    @property
    def has_pending_timer(self) -> bool:
        return self._task is not None and not self._task.done()

    # ============ Operations ============

    def start(self, candidates: Sequence[str], config: Optional[SelectionConfig] = None) -> bool:
        """
        Begin a run (IDLE/SETTLED -> RUNNING)

        Must be called from inside a running event loop; the ticks are
        scheduled on it.

        Args:
            candidates: ordered student ids
            config: pacing override for this run only

        Returns:
            True if a run was armed, False for the no-op cases
            (empty candidate list, already RUNNING)
        """
        candidates = tuple(candidates)
        if not candidates:
            logger.debug("Ignoring start with no candidates")
            return False
        if self.is_running:
            logger.debug("Ignoring start while a run is already spinning")
            return False

        loop = asyncio.get_running_loop()

        # Drops a previous run's pending winner-ready delay
        self._disarm()

        config = config or self.config
        self.run = SelectionRun(candidates=candidates, phase=SelectionPhase.RUNNING)
        generation = self._generation
        self._task = loop.create_task(self._spin(generation, self.run, config))

        logger.info(
            f"Selection run {generation} started over {len(candidates)} candidates "
            f"({config.tick_count} ticks every {config.tick_interval}s)"
        )
        self._emit([], self.run)
        return True

    def reset(self) -> None:
        """
        Clear highlight and winner, any phase -> IDLE

        Pending ticks and the winner-ready delay are cancelled before this
        returns.
        """
        was = self.run.phase
        self._disarm()
        self.run = SelectionRun()
        logger.info(f"Selection reset (was {was.value})")
        self._emit([], self.run)

    def close(self) -> None:
        """Winner view dismissed; engine state is unaffected"""
        logger.debug(f"Winner view closed (phase {self.run.phase.value})")

    async def wait(self) -> None:
        """Wait until the current run's task finishes (settled+revealed, or cancelled)"""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    # ============ Internals ============

    def _disarm(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _draw(self, candidates: Tuple[str, ...]) -> str:
        return candidates[self._rng.randrange(len(candidates))]

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _spin(self, generation: int, run: SelectionRun, config: SelectionConfig) -> None:
        for _ in range(config.tick_count):
            await asyncio.sleep(config.tick_interval)
            if not self._is_current(generation):
                return
            run.current_highlight = self._draw(run.candidates)
            run.ticks += 1
            run.history.append(run.current_highlight)
            logger.debug(f"Run {generation} tick {run.ticks}: {run.current_highlight}")
            self._emit(self._highlight_listeners, run)

        if not self._is_current(generation):
            return

        winner = self._draw(run.candidates)
        run.current_highlight = winner
        run.winner = winner
        run.phase = SelectionPhase.SETTLED
        logger.info(f"Selection run {generation} settled on {winner}")
        self._emit(self._settled_listeners, run)

        await asyncio.sleep(config.reveal_delay)
        if not self._is_current(generation):
            return
        self._emit(self._winner_ready_listeners, run)
