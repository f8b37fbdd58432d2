"""Hold-to-pause controller for the embedded video surface."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from surface import EMBED_API_READY, ChannelSendError, Readiness, ReadinessSignal, RemoteSurfaceHandle

from .input_filter import KeyEvent, is_text_entry_target, key_matches, normalize_key
from .transition_log import TransitionLog

LOGGER = logging.getLogger(__name__)

PAUSE_COMMAND = "pauseVideo"
RESUME_COMMAND = "playVideo"


@dataclass(frozen=True)
class PauseOnHoldConfig:
    """Configuration for :class:`PauseOnHoldController`.

    Attributes:
        hold_key: Key whose sustained press keeps the surface paused.
        resume_on_release: When False, releasing the key only clears the
            paused indicator and playback stays paused. When True, release also
            sends ``playVideo``.
        settle_delay: Seconds between the surface load signal and readiness.
            The remote player drops commands sent while it is still booting.
    """

    hold_key: str = "q"
    resume_on_release: bool = False
    settle_delay: float = 0.5
    log_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if not self.hold_key:
            raise ValueError("hold_key must be provided")
        if self.settle_delay < 0:
            raise ValueError("settle_delay must be >= 0")
        object.__setattr__(self, "hold_key", normalize_key(self.hold_key))

    @property
    def indicator_text(self) -> str:
        return f"Video paused (holding {self.hold_key.upper()})"


@dataclass
class HoldState:
    key: str
    active: bool = True
    source: str = "user-input"


class PauseOnHoldController:
    """Binds a hold key to pause commands on a :class:`RemoteSurfaceHandle`."""

    def __init__(
        self,
        handle: RemoteSurfaceHandle,
        config: Optional[PauseOnHoldConfig] = None,
        *,
        player_factory: Optional[Callable[[str], Any]] = None,
        api_signal: ReadinessSignal = EMBED_API_READY,
        on_indicator: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self.handle = handle
        self.config = config or PauseOnHoldConfig()
        self._on_indicator = on_indicator
        self._hold: Optional[HoldState] = None
        self._key_down = False
        self._paused = False
        self._settle_timer: Optional[asyncio.TimerHandle] = None
        self._load_seen = False
        self._closed = False
        self._log = TransitionLog("hold_pause", self.config.log_path)

        self._unsubscribe_api: Callable[[], None] = lambda: None
        if player_factory is not None:
            self._unsubscribe_api = api_signal.subscribe(lambda: self._attach_player(player_factory))

    # ------------------------------------------------------------------
    # Public API

    @property
    def paused(self) -> bool:
        """Paused indicator; True only after a pause command was delivered."""

        return self._paused

    @property
    def holding(self) -> bool:
        return self._hold is not None and self._hold.active

    @property
    def hold(self) -> Optional[HoldState]:
        return self._hold

    @property
    def indicator_text(self) -> Optional[str]:
        return self.config.indicator_text if self._paused else None

    def on_hold_start(self, event: KeyEvent) -> bool:
        """Handle a key-down. Returns True when a new hold started."""

        if self._closed or not key_matches(event.key, self.config.hold_key):
            return False
        if is_text_entry_target(event.target):
            return False
        event.prevent_default()
        if event.repeat or self._key_down or self.holding:
            return False
        self._key_down = True

        if self.handle.readiness is not Readiness.READY:
            self._log.emit("Idle", reason="hold.not_ready", key=self.config.hold_key)
            return False

        self._hold = HoldState(key=self.config.hold_key)
        self._log.emit("Holding", reason="hold.start", key=self.config.hold_key)
        self.issue_pause_command()
        return True

    def on_hold_end(self, event: KeyEvent) -> bool:
        """Handle a key-up. Returns True when an active hold ended."""

        if self._closed or not key_matches(event.key, self.config.hold_key):
            return False
        self._key_down = False
        hold = self._hold
        if hold is None or not hold.active:
            return False

        hold.active = False
        self._hold = None
        if self.config.resume_on_release:
            self._send(RESUME_COMMAND)
        self._set_paused(False)
        self._log.emit("Idle", reason="hold.end", key=self.config.hold_key)
        return True

    def issue_pause_command(self) -> bool:
        """Send ``pauseVideo``; dropped (never queued) while the surface is not ready."""

        if self.handle.readiness is not Readiness.READY:
            LOGGER.info("Pause dropped: surface %s is not ready", self.handle.surface_id)
            self._log.emit("Idle", reason="pause.dropped", cause="not_ready")
            return False
        if not self._send(PAUSE_COMMAND):
            return False
        self._set_paused(True)
        return True

    def on_surface_load(self) -> None:
        """Surface load signal; readiness follows after ``settle_delay``."""

        if self._closed or self._load_seen:
            return
        self._load_seen = True
        delay = self.config.settle_delay
        if delay <= 0:
            self._settle()
            return
        loop = asyncio.get_running_loop()
        self._settle_timer = loop.call_later(delay, self._settle)

    def close(self) -> None:
        """Surface unmounted: drop the hold and release the handle."""

        if self._closed:
            return
        self._closed = True
        if self._settle_timer is not None:
            self._settle_timer.cancel()
            self._settle_timer = None
        self._unsubscribe_api()
        self._hold = None
        self._key_down = False
        self._set_paused(False)
        self.handle.close()
        self._log.close()

    # ------------------------------------------------------------------
    # Helpers

    def _settle(self) -> None:
        self._settle_timer = None
        if self._closed:
            return
        if self.handle.mark_ready():
            self._log.emit("Ready", reason="surface.ready", surface=self.handle.surface_id)

    def _attach_player(self, player_factory: Callable[[str], Any]) -> None:
        if self._closed:
            return
        player = player_factory(self.handle.surface_id)
        self.handle.attach_direct_handle(player)
        self._log.emit("Attached", reason="api.ready", channel="direct_handle")

    def _send(self, command: str) -> bool:
        try:
            kind = self.handle.send(command)
        except ChannelSendError as exc:
            LOGGER.warning("Command %s to surface %s failed: %s", command, self.handle.surface_id, exc)
            self._log.emit(
                "Holding" if self.holding else "Idle",
                reason="command.failed",
                command=command,
                error=str(exc),
            )
            return False
        self._log.emit(
            "Holding" if self.holding else "Idle",
            reason="command.sent",
            command=command,
            channel=kind.name.lower(),
        )
        return True

    def _set_paused(self, paused: bool) -> None:
        if paused == self._paused:
            return
        self._paused = paused
        if self._on_indicator is not None:
            self._on_indicator(paused)
