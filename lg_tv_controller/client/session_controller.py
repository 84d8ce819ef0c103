# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
LG TV session and power state machine.

The controller owns the believed state of the TV and of the TCP session to it,
and gates when commands may be sent. It does not touch the network itself: all
I/O is delegated to caller-supplied sinks.

    send_frame(bytes)          Encrypted frame to write to the TCP session
    on_message(str)            Decoded message received from the TV
    on_power_state(bool)       Believed TV power state changed
    on_connect_request(bool)   The TCP session should be opened (True) or closed (False)
    wake_on_lan(bytes)         Magic packet to broadcast

Online status is pushed in by the transport with set_online_status(), and inbound
bytes with receive_frame(). Entry points may be called from any thread. The only
asynchronous step is the boot delay after power_on(), which runs as a timer on an
asyncio event loop.

Sinks are only called when the corresponding state actually changes; setting a
flag that already holds the requested value is a no-op.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass

from ..internal_types import *
from ..exceptions import (
    LgTvError,
    LgTvConfigError,
    LgTvDecodeError,
    LgTvDisposedError,
    LgTvNotOnlineError,
    LgTvNotInitializedError,
    LgTvNotReadyError,
  )
from ..constants import BOOT_DELAY, KEYCODE_LENGTH
from ..pkg_logging import logger
from ..protocol import (
    LgCryptoEngine,
    LgCommand,
    RandomSource,
    parse_mac_address,
    build_magic_packet,
  )

@dataclass(frozen=True)
class SessionState:
    """A snapshot of the session flags."""

    online: bool = False
    """The TCP session to the TV is up (reported by the transport)."""

    powered: bool = False
    """The TV is believed to be on."""

    connect_requested: bool = False
    """The transport has been asked to keep the TCP session open."""

    pending_power_on: bool = False
    """A boot delay timer is running after a Wake-on-LAN broadcast."""

def validate_keycode(keycode: Optional[str]) -> str:
    """Checks that keycode is exactly KEYCODE_LENGTH ASCII characters.

    Raises LgTvConfigError if it is not.
    """
    if keycode is None or keycode == '':
        raise LgTvConfigError("Keycode is not set")
    if not keycode.isascii():
        raise LgTvConfigError("Keycode must contain only ASCII characters")
    if len(keycode) != KEYCODE_LENGTH:
        raise LgTvConfigError(f"Keycode must be exactly {KEYCODE_LENGTH} characters, got {len(keycode)}")
    return keycode

class LgTvSessionController:
    """Session and power state machine for one LG TV."""

    mac_address: Optional[str]
    boot_delay_secs: float
    random_source: Optional[RandomSource]
    strict_text: bool

    send_frame: Optional[FrameSink]
    on_message: Optional[MessageSink]
    on_power_state: Optional[FlagSink]
    on_connect_request: Optional[FlagSink]
    wake_on_lan: Optional[FrameSink]

    _engine: Optional[LgCryptoEngine] = None
    _online: bool = False
    _powered: bool = False
    _connect_requested: bool = False
    _disposed: bool = False
    _loop: Optional[asyncio.AbstractEventLoop] = None
    _boot_timer: Optional[asyncio.TimerHandle] = None
    _boot_generation: int = 0
    """Incremented whenever a pending boot delay is started or abandoned; a timer
    only fires its transition if its generation is still current."""
    _pending_generation: Optional[int] = None
    _lock: threading.RLock

    def __init__(
            self,
            send_frame: Optional[FrameSink]=None,
            on_message: Optional[MessageSink]=None,
            on_power_state: Optional[FlagSink]=None,
            on_connect_request: Optional[FlagSink]=None,
            wake_on_lan: Optional[FrameSink]=None,
            *,
            mac_address: Optional[str]=None,
            boot_delay_secs: float=BOOT_DELAY,
            random_source: Optional[RandomSource]=None,
            strict_text: bool=False,
            loop: Optional[asyncio.AbstractEventLoop]=None,
          ) -> None:
        """Creates a controller. No keycode is installed until initialize() is called.

        Args:
            send_frame, on_message, on_power_state, on_connect_request, wake_on_lan:
                Output sinks; see the module documentation. Any may be None.
            mac_address:
                Hardware address of the TV, used by power_on().
            boot_delay_secs:
                Delay between the Wake-on-LAN broadcast and the connect request.
            random_source:
                IV source passed to the crypto engine. If None, the shared
                process-wide source is used.
            strict_text:
                Passed to the crypto engine. If True, inbound frames that do not
                decrypt to valid UTF-8 are dropped and logged instead of being
                delivered with replacement characters.
            loop:
                Event loop that runs the boot delay timer. If None, the running
                loop at construction time is used, or failing that, the running
                loop when power_on() is first called.
        """
        self.send_frame = send_frame
        self.on_message = on_message
        self.on_power_state = on_power_state
        self.on_connect_request = on_connect_request
        self.wake_on_lan = wake_on_lan
        self.mac_address = mac_address
        self.boot_delay_secs = boot_delay_secs
        self.random_source = random_source
        self.strict_text = strict_text
        self._lock = threading.RLock()
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        self._loop = loop

    @property
    def state(self) -> SessionState:
        with self._lock:
            return SessionState(
                online=self._online,
                powered=self._powered,
                connect_requested=self._connect_requested,
                pending_power_on=self._pending_generation is not None,
              )

    @property
    def online(self) -> bool:
        return self._online

    @property
    def powered(self) -> bool:
        return self._powered

    @property
    def connect_requested(self) -> bool:
        return self._connect_requested

    @property
    def pending_power_on(self) -> bool:
        return self._pending_generation is not None

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_not_disposed(self) -> None:
        if self._disposed:
            raise LgTvDisposedError(f"{self} has been disposed")

    def _call_sink(self, name: str, sink: Optional[Callable[[Any], None]], value: Any) -> None:
        """Calls an output sink. Sink failures are logged, never propagated."""
        if sink is None:
            logger.debug(f"{self}: {name} sink not set; dropping {type(value).__name__}")
            return
        try:
            sink(value)
        except Exception as e:
            logger.exception(f"{self}: {name} sink failed: {e}")

    def _update_flags(
            self,
            powered: Optional[bool]=None,
            connect: Optional[bool]=None,
          ) -> Tuple[Optional[bool], Optional[bool]]:
        """Sets flags (caller must hold _lock). Returns the new values of the flags
        that changed, or None for those that did not."""
        powered_changed: Optional[bool] = None
        connect_changed: Optional[bool] = None
        if powered is not None and powered != self._powered:
            self._powered = powered
            powered_changed = powered
            logger.debug(f"{self}: powered -> {powered}")
        if connect is not None and connect != self._connect_requested:
            self._connect_requested = connect
            connect_changed = connect
            logger.debug(f"{self}: connect_requested -> {connect}")
        return (powered_changed, connect_changed)

    def _notify(self, changes: Tuple[Optional[bool], Optional[bool]]) -> None:
        """Emits change signals returned by _update_flags (caller must not hold _lock)."""
        powered_changed, connect_changed = changes
        if powered_changed is not None:
            self._call_sink("on_power_state", self.on_power_state, powered_changed)
        if connect_changed is not None:
            self._call_sink("on_connect_request", self.on_connect_request, connect_changed)

    def initialize(self, keycode: Optional[str]) -> None:
        """Installs a keycode, replacing any previous one.

        The previous crypto engine is disposed first. Key derivation is slow;
        do not call this per command.

        Raises LgTvConfigError if the keycode is malformed; the current engine is
        kept. Raises LgTvKeyDerivationError if the key cannot be derived; the
        controller is left uninitialized. In either case initialize() may be retried.
        """
        self._check_not_disposed()
        try:
            validate_keycode(keycode)
        except LgTvConfigError as e:
            logger.error(f"{self}: Initialization failed: {e}")
            raise
        assert keycode is not None
        with self._lock:
            old_engine = self._engine
            self._engine = None
        if old_engine is not None:
            logger.debug(f"{self}: Disposing previous crypto engine")
            old_engine.dispose()
        try:
            logger.debug(f"{self}: Deriving key (this may take a moment)")
            engine = LgCryptoEngine(keycode, random_source=self.random_source, strict_text=self.strict_text)
        except LgTvError as e:
            logger.error(f"{self}: Initialization failed: {e}")
            raise
        with self._lock:
            if self._disposed:
                engine.dispose()
                raise LgTvDisposedError(f"{self} was disposed during initialization")
            self._engine = engine
        logger.info(f"{self}: Crypto engine initialized")

    def set_online_status(self, connected: bool) -> None:
        """Reports the state of the TCP session. Called by the transport.

        A session coming up while the TV is believed off means the TV is reachable,
        so it is marked on. A session going down does not mark the TV off; the loss
        may be transient.
        """
        self._check_not_disposed()
        connected = bool(connected)
        changes: Tuple[Optional[bool], Optional[bool]] = (None, None)
        with self._lock:
            if connected != self._online:
                logger.info(f"{self}: Session {'ONLINE' if connected else 'OFFLINE'}")
            self._online = connected
            if connected and not self._powered:
                logger.debug(f"{self}: Connection established; assuming TV is on")
                changes = self._update_flags(powered=True)
            elif not connected and self._powered:
                logger.debug(f"{self}: Connection lost; TV may have entered standby")
        self._notify(changes)

    def request_connection(self, connect: bool=True) -> None:
        """Asks the transport to open (or close) the TCP session without changing
        the believed power state. Used to attach to a TV that is already on."""
        self._check_not_disposed()
        with self._lock:
            changes = self._update_flags(connect=bool(connect))
        self._notify(changes)

    def receive_frame(self, raw: Optional[bytes]) -> Optional[str]:
        """Decodes an inbound frame from the transport.

        A non-empty message means the TV is alive: if it was believed off, it is
        marked on and a connection is requested. The message is forwarded to
        on_message.

        Returns the decoded message, or None if the frame was dropped. Frames are
        dropped (and logged) if no keycode is installed, if they decode to an empty
        string, or if they cannot be decoded as text.
        """
        self._check_not_disposed()
        engine = self._engine
        if engine is None:
            logger.error(f"{self}: Received {0 if raw is None else len(raw)} bytes before initialize(); dropped")
            return None
        try:
            msg = engine.decode(raw)
        except LgTvDisposedError:
            logger.warning(f"{self}: Crypto engine replaced while decoding; frame dropped")
            return None
        except LgTvDecodeError as e:
            logger.error(f"{self}: Decode error; frame dropped: {e}")
            return None
        if msg == '':
            logger.debug(f"{self}: Frame decoded to empty message (wrong keycode or corrupted data?)")
            return None
        logger.debug(f"{self}: Received message {msg!r}")
        changes: Tuple[Optional[bool], Optional[bool]] = (None, None)
        with self._lock:
            if not self._powered:
                logger.debug(f"{self}: Response received from TV; marking it on")
                changes = self._update_flags(powered=True, connect=True)
        self._notify(changes)
        self._call_sink("on_message", self.on_message, msg)
        return msg

    def _ready_engine(self) -> LgCryptoEngine:
        """Returns the crypto engine if commands may be sent, else raises LgTvNotReadyError."""
        self._check_not_disposed()
        if not self._online:
            raise LgTvNotOnlineError(f"{self}: Not online (TCP session is down)")
        engine = self._engine
        if engine is None:
            raise LgTvNotInitializedError(f"{self}: Crypto engine not initialized; call initialize() first")
        return engine

    def send(self, command: LgCommand) -> bytes:
        """Encrypts a command and hands the frame to send_frame.

        Raises LgTvNotOnlineError or LgTvNotInitializedError (both LgTvNotReadyError)
        if the command cannot be sent; the command is dropped and not retried.

        Returns the encrypted frame.
        """
        try:
            engine = self._ready_engine()
            try:
                frame = engine.encode(command.text)
            except LgTvDisposedError as e:
                raise LgTvNotInitializedError(f"{self}: Crypto engine was replaced while sending") from e
        except LgTvNotReadyError as e:
            logger.warning(f"{self}: {command} dropped: {e}")
            raise
        logger.debug(f"{self}: Sending {command} as {len(frame)} bytes")
        self._call_sink("send_frame", self.send_frame, frame)
        return frame

    def send_command(self, key_name: str) -> bytes:
        """Sends a remote control key press (KEY_ACTION <key_name>)."""
        return self.send(LgCommand.key_action(key_name))

    send_key = send_command

    def send_raw_command(self, text: str) -> bytes:
        """Sends command text as-is."""
        return self.send(LgCommand(text))

    def volume_up(self) -> bytes:
        return self.send_command("volumeup")

    def volume_down(self) -> bytes:
        return self.send_command("volumedown")

    def volume_mute(self) -> bytes:
        return self.send_command("volumemute")

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise LgTvError(f"{self}: power_on() requires an event loop for the boot delay") from e
        return self._loop

    def _cancel_boot_timer(self) -> None:
        """Abandons any pending boot delay (caller must hold _lock)."""
        self._boot_generation += 1
        self._pending_generation = None
        if self._boot_timer is not None:
            logger.debug(f"{self}: Cancelling pending boot delay")
            self._boot_timer.cancel()
            self._boot_timer = None

    def power_on(self) -> None:
        """Wakes the TV with a Wake-on-LAN broadcast and requests a connection once it has booted.

        Immediately marks the TV off and withdraws the connect request, then after
        boot_delay_secs marks it on and requests a connection. Calling power_on()
        again while a boot delay is pending restarts the delay.

        Raises LgTvConfigError, before any state changes, if mac_address is malformed.
        """
        self._check_not_disposed()
        mac = parse_mac_address(self.mac_address)
        loop = self._require_loop()
        logger.info(f"{self}: Power on: sending Wake-on-LAN to {self.mac_address}")
        self._call_sink("wake_on_lan", self.wake_on_lan, build_magic_packet(mac))
        with self._lock:
            changes = self._update_flags(powered=False, connect=False)
            self._cancel_boot_timer()
            generation = self._boot_generation
            self._pending_generation = generation
        self._notify(changes)
        logger.debug(f"{self}: Waiting {self.boot_delay_secs} seconds for TV to boot")
        loop.call_soon_threadsafe(self._start_boot_timer, generation)

    def _start_boot_timer(self, generation: int) -> None:
        """Runs on the event loop."""
        with self._lock:
            if self._disposed or generation != self._boot_generation:
                return
            assert self._loop is not None
            self._boot_timer = self._loop.call_later(self.boot_delay_secs, self._on_boot_delay_elapsed, generation)

    def _on_boot_delay_elapsed(self, generation: int) -> None:
        """Runs on the event loop."""
        with self._lock:
            if self._disposed or generation != self._boot_generation:
                return
            self._boot_timer = None
            self._pending_generation = None
            changes = self._update_flags(powered=True, connect=True)
        logger.info(f"{self}: Boot delay complete; requesting connection")
        self._notify(changes)

    def power_off(self) -> bool:
        """Sends the non-toggling power-down command and marks the TV off.

        If the command cannot be sent (not online or not initialized) it is dropped
        with a warning, and the TV is still marked off. Any pending boot delay is
        cancelled.

        Returns True if the power-down command was handed to the transport.
        """
        self._check_not_disposed()
        sent = True
        try:
            self.send(LgCommand.power_off())
        except LgTvNotReadyError:
            sent = False
        with self._lock:
            self._cancel_boot_timer()
            changes = self._update_flags(powered=False, connect=False)
        self._notify(changes)
        logger.info(f"{self}: Power off {'sent' if sent else 'not sent'}; TV marked in standby")
        return sent

    def dispose(self) -> None:
        """Cancels any pending boot delay and zeroes the key. Safe to call more than once."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            self._cancel_boot_timer()
            engine = self._engine
            self._engine = None
        if engine is not None:
            engine.dispose()
        logger.debug(f"{self}: Disposed")

    def __enter__(self) -> LgTvSessionController:
        return self

    def __exit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType],
          ) -> None:
        self.dispose()

    def __str__(self) -> str:
        return f"LgTvSessionController(mac={self.mac_address})"

    def __repr__(self) -> str:
        return str(self)
