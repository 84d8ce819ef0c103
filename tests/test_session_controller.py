"""Tests for the session and power state machine."""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest
from Crypto.Cipher import AES

from lg_tv_controller import (
    LgTvConfigError,
    LgTvDisposedError,
    LgTvNotInitializedError,
    LgTvNotOnlineError,
    LgTvNotReadyError,
)
from lg_tv_controller.client import LgTvSessionController, SessionState
from lg_tv_controller.protocol import build_magic_packet, derive_key, pad

from .conftest import KEYCODE, MAC_ADDRESS, OTHER_KEYCODE


@pytest.fixture
def sinks():
    return MagicMock()


def make_controller(sinks, **kwargs):
    kwargs.setdefault("mac_address", MAC_ADDRESS)
    return LgTvSessionController(
        send_frame=sinks.send_frame,
        on_message=sinks.on_message,
        on_power_state=sinks.on_power_state,
        on_connect_request=sinks.on_connect_request,
        wake_on_lan=sinks.wake_on_lan,
        **kwargs,
    )


@pytest.fixture
def controller(sinks):
    with make_controller(sinks) as c:
        c.initialize(KEYCODE)
        yield c


class TestOnlineStatus:
    """Tests for set_online_status and receive_frame state transitions."""

    def test_initial_state(self, sinks):
        c = make_controller(sinks)
        assert c.state == SessionState()
        assert not c.initialized

    def test_online_marks_powered(self, controller, sinks):
        controller.set_online_status(True)
        assert controller.online and controller.powered
        sinks.on_power_state.assert_called_once_with(True)
        sinks.on_connect_request.assert_not_called()

    def test_offline_keeps_powered(self, controller, sinks):
        controller.set_online_status(True)
        controller.set_online_status(False)
        assert not controller.online
        assert controller.powered
        sinks.on_power_state.assert_called_once_with(True)

    def test_repeated_online_is_quiet(self, controller, sinks):
        controller.set_online_status(True)
        controller.set_online_status(True)
        sinks.on_power_state.assert_called_once_with(True)

    def test_receive_marks_powered_and_requests_connection(self, controller, sinks, engine):
        assert controller.receive_frame(engine.encode("OK")) == "OK"
        assert controller.powered and controller.connect_requested
        sinks.on_power_state.assert_called_once_with(True)
        sinks.on_connect_request.assert_called_once_with(True)
        sinks.on_message.assert_called_once_with("OK")

    def test_receive_when_powered_only_forwards(self, controller, sinks, engine):
        controller.set_online_status(True)
        sinks.reset_mock()
        controller.receive_frame(engine.encode("OK"))
        sinks.on_power_state.assert_not_called()
        sinks.on_connect_request.assert_not_called()
        sinks.on_message.assert_called_once_with("OK")

    def test_receive_garbage_is_dropped(self, controller, sinks):
        assert controller.receive_frame(b"\x01" * 31) is None
        assert not controller.powered
        sinks.on_message.assert_not_called()

    def test_receive_wrong_key_is_dropped(self, controller, sinks, other_engine):
        # The wrong key yields empty or garbage text; either way nothing raises.
        controller.receive_frame(other_engine.encode("OK"))
        assert all(call.args != ("OK",) for call in sinks.on_message.call_args_list)

    def test_receive_before_initialize(self, sinks, engine):
        with make_controller(sinks) as c:
            assert c.receive_frame(engine.encode("OK")) is None
        sinks.on_message.assert_not_called()

    def test_failing_sink_does_not_propagate(self, controller, sinks, engine):
        sinks.on_message.side_effect = RuntimeError("boom")
        assert controller.receive_frame(engine.encode("OK")) == "OK"

    def test_request_connection(self, controller, sinks):
        controller.request_connection()
        controller.request_connection(True)
        sinks.on_connect_request.assert_called_once_with(True)
        assert not controller.powered


class TestSend:
    """Tests for command gating and encryption."""

    def test_send_when_offline(self, controller, sinks):
        with pytest.raises(LgTvNotOnlineError):
            controller.send_command("volumeup")
        sinks.send_frame.assert_not_called()

    def test_send_when_not_initialized(self, sinks):
        with make_controller(sinks) as c:
            c.set_online_status(True)
            with pytest.raises(LgTvNotInitializedError):
                c.volume_up()
        sinks.send_frame.assert_not_called()

    def test_not_ready_errors_share_a_base(self):
        assert issubclass(LgTvNotOnlineError, LgTvNotReadyError)
        assert issubclass(LgTvNotInitializedError, LgTvNotReadyError)

    def test_send_key(self, controller, sinks, engine):
        controller.set_online_status(True)
        frame = controller.send_command("volumeup")
        sinks.send_frame.assert_called_once_with(frame)
        assert engine.decode(frame) == "KEY_ACTION volumeup"

    @pytest.mark.parametrize(
        "method, text",
        [
            ("volume_up", "KEY_ACTION volumeup"),
            ("volume_down", "KEY_ACTION volumedown"),
            ("volume_mute", "KEY_ACTION volumemute"),
        ],
    )
    def test_volume_helpers(self, controller, sinks, engine, method, text):
        controller.set_online_status(True)
        getattr(controller, method)()
        (frame,), _ = sinks.send_frame.call_args
        assert engine.decode(frame) == text

    def test_send_raw_command(self, controller, sinks, engine):
        controller.set_online_status(True)
        frame = controller.send_raw_command("INPUT_SELECT hdmi1")
        assert engine.decode(frame) == "INPUT_SELECT hdmi1"

    def test_reinitialize_uses_new_key(self, controller, sinks, other_engine):
        controller.set_online_status(True)
        old_engine = controller._engine
        controller.initialize(OTHER_KEYCODE)
        assert old_engine.disposed
        assert other_engine.decode(controller.send_command("ok")) == "KEY_ACTION ok"

    @pytest.mark.parametrize("keycode", [None, "", "ABC", "ABCD12345", "ABCD123é"])
    def test_bad_keycode_keeps_engine(self, controller, keycode):
        old_engine = controller._engine
        with pytest.raises(LgTvConfigError):
            controller.initialize(keycode)
        assert controller._engine is old_engine
        assert not old_engine.disposed


class TestPowerOff:
    """Tests for power_off."""

    def test_power_off_online(self, controller, sinks, engine):
        controller.set_online_status(True)
        controller.request_connection()
        sinks.reset_mock()
        assert controller.power_off()
        (frame,), _ = sinks.send_frame.call_args
        assert engine.decode(frame) == "POWER off"
        assert not controller.powered
        assert not controller.connect_requested
        sinks.on_power_state.assert_called_once_with(False)
        sinks.on_connect_request.assert_called_once_with(False)

    def test_power_off_offline_still_marks_off(self, controller, sinks, engine):
        controller.receive_frame(engine.encode("OK"))
        assert controller.powered
        assert not controller.power_off()
        sinks.send_frame.assert_not_called()
        assert not controller.powered
        assert not controller.connect_requested


class TestPowerOn:
    """Tests for power_on and the boot delay."""

    def test_bad_mac_changes_nothing(self, sinks):
        with make_controller(sinks, mac_address="not-a-mac") as c:
            c.request_connection()
            sinks.reset_mock()
            with pytest.raises(LgTvConfigError):
                c.power_on()
            assert c.connect_requested
            assert not c.pending_power_on
        sinks.wake_on_lan.assert_not_called()

    def test_missing_mac(self, sinks):
        with make_controller(sinks, mac_address=None) as c:
            with pytest.raises(LgTvConfigError):
                c.power_on()

    @pytest.mark.asyncio
    async def test_power_on_sequence(self, sinks):
        with make_controller(sinks, boot_delay_secs=0.2) as c:
            c.request_connection()
            sinks.reset_mock()
            c.power_on()
            sinks.wake_on_lan.assert_called_once_with(build_magic_packet(MAC_ADDRESS))
            assert c.state == SessionState(pending_power_on=True)
            sinks.on_connect_request.assert_called_once_with(False)

            await asyncio.sleep(0.1)
            assert not c.powered

            await asyncio.sleep(0.25)
            assert c.state == SessionState(powered=True, connect_requested=True)
            sinks.on_power_state.assert_called_once_with(True)
            assert sinks.on_connect_request.call_args_list[-1].args == (True,)

    @pytest.mark.asyncio
    async def test_power_on_again_restarts_delay(self, sinks):
        with make_controller(sinks, boot_delay_secs=0.3) as c:
            c.power_on()
            await asyncio.sleep(0.15)
            c.power_on()
            await asyncio.sleep(0.2)
            # 0.35s after the first call, but only 0.2s after the second
            assert c.pending_power_on
            assert not c.powered
            await asyncio.sleep(0.2)
            assert c.powered and c.connect_requested
            assert sinks.wake_on_lan.call_count == 2
            sinks.on_connect_request.assert_called_once_with(True)
            sinks.on_power_state.assert_called_once_with(True)

    @pytest.mark.asyncio
    async def test_power_off_cancels_boot(self, controller, sinks):
        controller.boot_delay_secs = 0.1
        controller.power_on()
        controller.power_off()
        await asyncio.sleep(0.2)
        assert not controller.powered
        assert not controller.pending_power_on
        sinks.on_power_state.assert_not_called()

    @pytest.mark.asyncio
    async def test_dispose_cancels_boot(self, sinks):
        c = make_controller(sinks, boot_delay_secs=0.1)
        c.power_on()
        c.dispose()
        await asyncio.sleep(0.2)
        assert not c.powered
        sinks.on_connect_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_power_on_from_another_thread(self, sinks):
        with make_controller(sinks, boot_delay_secs=0.05) as c:
            await asyncio.get_running_loop().run_in_executor(None, c.power_on)
            await asyncio.sleep(0.2)
            assert c.powered and c.connect_requested


class TestDispose:
    """Tests for dispose."""

    def test_dispose_zeroes_key(self, sinks):
        c = make_controller(sinks)
        c.initialize(KEYCODE)
        engine = c._engine
        c.dispose()
        c.dispose()
        assert engine.disposed
        assert c.disposed and not c.initialized

    def test_use_after_dispose(self, sinks):
        c = make_controller(sinks)
        c.dispose()
        with pytest.raises(LgTvDisposedError):
            c.send_command("ok")
        with pytest.raises(LgTvDisposedError):
            c.initialize(KEYCODE)
        with pytest.raises(LgTvDisposedError):
            c.set_online_status(True)


def _invalid_utf8_frame():
    key = derive_key(KEYCODE)
    iv = bytes(16)
    return AES.new(key, AES.MODE_ECB).encrypt(iv) + AES.new(key, AES.MODE_CBC, iv=iv).encrypt(pad(b"OK\xff\r"))


class TestStrictText:
    """Tests for the strict_text option passed through to the crypto engine."""

    def test_default_replaces_invalid_text(self, controller, sinks):
        assert controller.receive_frame(_invalid_utf8_frame()) == "OK\ufffd"
        sinks.on_message.assert_called_once_with("OK\ufffd")

    def test_strict_drops_invalid_text(self, sinks):
        with make_controller(sinks, strict_text=True) as c:
            c.initialize(KEYCODE)
            assert c.receive_frame(_invalid_utf8_frame()) is None
            assert not c.powered
        sinks.on_message.assert_not_called()

    def test_strict_accepts_valid_text(self, sinks, engine):
        with make_controller(sinks, strict_text=True) as c:
            c.initialize(KEYCODE)
            assert c.receive_frame(engine.encode("OK")) == "OK"


class TestConcurrency:
    """Re-initialization and disposal racing in-flight sends and receives."""

    def _churn(self, c, first_done, stop):
        """Disposes the live engine and re-initializes with alternating keycodes, then disposes the controller."""
        try:
            assert first_done.wait(5.0)
            for keycode in (OTHER_KEYCODE, KEYCODE, OTHER_KEYCODE):
                current = c._engine
                if current is not None:
                    current.dispose()
                c.initialize(keycode)
            c.dispose()
        finally:
            stop.set()

    def test_send_races_reinitialize_and_dispose(self, sinks, engine, other_engine):
        c = make_controller(sinks)
        c.initialize(KEYCODE)
        c.set_online_status(True)
        first_done = threading.Event()
        stop = threading.Event()

        def send_until_stopped():
            outcomes = []
            while not stop.is_set():
                try:
                    outcomes.append(c.send_command("ok"))
                    first_done.set()
                except (LgTvNotReadyError, LgTvDisposedError) as e:
                    outcomes.append(e)
            return outcomes

        with ThreadPoolExecutor(max_workers=5) as pool:
            senders = [pool.submit(send_until_stopped) for _ in range(4)]
            pool.submit(self._churn, c, first_done, stop).result()
            outcomes = [o for f in senders for o in f.result()]

        frames = [o for o in outcomes if isinstance(o, bytes)]
        assert len(frames) > 0
        for frame in frames:
            assert "KEY_ACTION ok" in (engine.decode(frame), other_engine.decode(frame))
        assert all(isinstance(o, (bytes, LgTvNotReadyError, LgTvDisposedError)) for o in outcomes)

    def test_receive_races_reinitialize_and_dispose(self, sinks, engine, other_engine):
        c = make_controller(sinks)
        c.initialize(KEYCODE)
        inbound = [engine.encode("OK"), other_engine.encode("OK")]
        first_done = threading.Event()
        stop = threading.Event()

        def receive_until_stopped():
            outcomes = []
            i = 0
            while not stop.is_set():
                try:
                    outcomes.append(c.receive_frame(inbound[i % 2]))
                    first_done.set()
                except LgTvDisposedError as e:
                    outcomes.append(e)
                i += 1
            return outcomes

        with ThreadPoolExecutor(max_workers=5) as pool:
            receivers = [pool.submit(receive_until_stopped) for _ in range(4)]
            pool.submit(self._churn, c, first_done, stop).result()
            outcomes = [o for f in receivers for o in f.result()]

        assert "OK" in outcomes
        assert all(o is None or isinstance(o, (str, LgTvDisposedError)) for o in outcomes)
