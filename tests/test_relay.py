import asyncio

from bitrelay import codec
from bitrelay.connection import DEVICE, MONITOR, UNASSIGNED
from bitrelay.relay import BitRelay


def run(coro):
    return asyncio.run(coro)


def sent(conn):
    return conn.websocket.sent


async def attach(relay, conn, hello):
    await relay.handle_message(conn, hello)
    return conn


def test_end_to_end_device_first(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        monitor = await attach(relay, make_conn(), "web_monitor")
        assert sent(monitor) == [codec.MONITOR_CONNECTED]

        await relay.handle_message(device, "34")
        assert sent(monitor)[-1] == "34"

        await relay.handle_message(monitor, "SET_5_1")
        assert sent(device) == ["SET_5_1"]

        device.websocket.drop()
        await relay.handle_close(device)
        assert sent(monitor)[-1] == codec.DEVICE_DISCONNECTED
        assert not relay.registry.is_device_connected()

    run(scenario())


def test_device_identification_is_broadcast(make_conn):
    async def scenario():
        relay = BitRelay()
        m1 = await attach(relay, make_conn(), "web_monitor")
        m2 = await attach(relay, make_conn(), "web_monitor")
        device = await attach(relay, make_conn(), "stinger_missile")
        assert device.role == DEVICE
        assert sent(m1) == [codec.MONITOR_CONNECTED, codec.DEVICE_CONNECTED]
        assert sent(m2) == [codec.MONITOR_CONNECTED, codec.DEVICE_CONNECTED]
        assert sent(device) == []

    run(scenario())


def test_directional_commands_from_device_reach_monitors_only(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        m1 = await attach(relay, make_conn(), "web_monitor")
        m2 = await attach(relay, make_conn(), "web_monitor")
        bystander = make_conn()

        for raw in ("SET_3_1", "BIT_65535", "CLS"):
            await relay.handle_message(device, raw)

        assert sent(m1)[1:] == ["SET_3_1", "BIT_65535", "CLS"]
        assert sent(m2)[1:] == ["SET_3_1", "BIT_65535", "CLS"]
        assert sent(device) == []
        assert sent(bystander) == []

    run(scenario())


def test_directional_commands_from_monitor_reach_device_only(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        m1 = await attach(relay, make_conn(), "web_monitor")
        m2 = await attach(relay, make_conn(), "web_monitor")

        for raw in ("SET_3_1", "BIT_65535", "CLS", "12"):
            await relay.handle_message(m1, raw)

        assert sent(device) == ["SET_3_1", "BIT_65535", "CLS", "12"]
        assert sent(m1) == [codec.MONITOR_CONNECTED]
        assert sent(m2) == [codec.MONITOR_CONNECTED]

    run(scenario())


def test_unassigned_sender_is_routed_like_a_monitor(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        anon = make_conn()
        await relay.handle_message(anon, "BIT_5")
        assert anon.role == UNASSIGNED
        assert sent(device) == ["BIT_5"]

    run(scenario())


def test_commands_without_device_are_dropped(make_conn):
    async def scenario():
        relay = BitRelay()
        monitor = await attach(relay, make_conn(), "web_monitor")
        await relay.handle_message(monitor, "SET_1_1")
        await relay.handle_message(monitor, "100")
        assert sent(monitor) == [codec.MONITOR_CONNECTED]

    run(scenario())


def test_unrecognized_and_out_of_range_do_nothing(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        monitor = await attach(relay, make_conn(), "web_monitor")
        for raw in ("hello", "70000", "-3"):
            await relay.handle_message(device, raw)
            await relay.handle_message(monitor, raw)
        assert sent(device) == []
        assert sent(monitor) == [codec.MONITOR_CONNECTED]

    run(scenario())


def test_role_is_stable(make_conn):
    async def scenario():
        relay = BitRelay()
        monitor = await attach(relay, make_conn(), "web_monitor")
        await relay.handle_message(monitor, "web_monitor")
        assert len(relay.registry.monitors) == 1

        # a monitor cannot become the device
        await relay.handle_message(monitor, "vibrator_device")
        assert monitor.role == MONITOR
        assert relay.registry.device is None

        device = await attach(relay, make_conn(), "vibrator_device")
        await relay.handle_message(device, "web_monitor")
        assert device.role == DEVICE
        assert relay.registry.is_device(device)
        assert not relay.registry.is_monitor(device)

    run(scenario())


def test_new_device_takes_over_slot(make_conn):
    async def scenario():
        relay = BitRelay()
        old = await attach(relay, make_conn(), "vibrator_device")
        new = await attach(relay, make_conn(), "vibrator_device")
        monitor = await attach(relay, make_conn(), "web_monitor")

        await relay.handle_message(monitor, "CLS")
        assert sent(new) == ["CLS"]
        assert sent(old) == []

        # the old device is no longer addressed as device: its reports go to the new one
        await relay.handle_message(old, "7")
        assert sent(new) == ["CLS", "7"]
        assert sent(monitor) == [codec.MONITOR_CONNECTED]

        # closing the replaced device is not a device disconnect
        await relay.handle_close(old)
        assert codec.DEVICE_DISCONNECTED not in sent(monitor)

    run(scenario())


def test_disconnect_notifies_each_monitor_once(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        monitors = [await attach(relay, make_conn(), "web_monitor") for _ in range(3)]
        device.websocket.drop()
        await relay.handle_close(device)
        await relay.handle_error(device, RuntimeError("late error"))
        for m in monitors:
            assert sent(m).count(codec.DEVICE_DISCONNECTED) == 1

    run(scenario())


def test_failed_send_does_not_stop_broadcast(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        good1 = await attach(relay, make_conn(), "web_monitor")
        bad = make_conn()
        await relay.handle_message(bad, "web_monitor")
        bad.websocket.fail = True
        good2 = await attach(relay, make_conn(), "web_monitor")

        await relay.handle_message(device, "34")
        assert sent(good1)[-1] == "34"
        assert sent(good2)[-1] == "34"
        # still open, so kept for the next broadcast
        assert relay.registry.is_monitor(bad)

    run(scenario())


def test_broadcast_prunes_closed_monitors(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        live = await attach(relay, make_conn(), "web_monitor")
        gone = await attach(relay, make_conn(), "web_monitor")
        gone.websocket.drop()

        await relay.handle_message(device, "1")
        assert sent(gone) == [codec.MONITOR_CONNECTED]
        assert sent(live)[-1] == "1"
        assert not relay.registry.is_monitor(gone)

    run(scenario())


class SlowSocket:
    """Delegates to a fake socket but never finishes a send."""

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def send_text(self, text):
        await asyncio.sleep(10)


class GatedSocket:
    """Delegates to a fake socket; sends wait until ``gate`` is set."""

    def __init__(self, inner):
        self.inner = inner
        self.gate = asyncio.Event()
        self.gate.set()

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def send_text(self, text):
        await self.gate.wait()
        await self.inner.send_text(text)


def test_send_timeout_is_a_delivery_failure(make_conn):
    async def scenario():
        relay = BitRelay(send_timeout=0.05)
        device = relay.accept(make_conn().websocket)
        await relay.handle_message(device, "vibrator_device")
        fast = relay.accept(make_conn().websocket)
        await relay.handle_message(fast, "web_monitor")
        slow = relay.accept(SlowSocket(make_conn().websocket))
        await asyncio.wait_for(relay.handle_message(slow, "web_monitor"), 1)

        # without a per-send timeout this would hang on the slow monitor for 10s
        await asyncio.wait_for(relay.handle_message(device, "8"), 1)

        assert fast.websocket.sent == [codec.MONITOR_CONNECTED, "8"]
        assert slow.websocket.inner.sent == []
        assert relay.registry.is_monitor(slow)

    run(scenario())


def test_handlers_do_not_interleave(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        monitor = relay.accept(GatedSocket(make_conn().websocket))
        await relay.handle_message(monitor, "web_monitor")
        monitor.websocket.gate.clear()

        report = asyncio.create_task(relay.handle_message(device, "34"))
        await asyncio.sleep(0.01)
        device.websocket.drop()
        close = asyncio.create_task(relay.handle_close(device))
        await asyncio.sleep(0.01)

        # the report is stuck mid-delivery; the close must wait for it
        assert not report.done()
        assert not close.done()
        assert relay.registry.is_device(device)

        monitor.websocket.gate.set()
        await asyncio.wait_for(asyncio.gather(report, close), 1)

        assert monitor.websocket.inner.sent == [
            codec.MONITOR_CONNECTED, "34", codec.DEVICE_DISCONNECTED]
        assert relay.registry.device is None

    run(scenario())


def test_sweep_is_silent(make_conn):
    async def scenario():
        relay = BitRelay()
        device = await attach(relay, make_conn(), "vibrator_device")
        live = await attach(relay, make_conn(), "web_monitor")
        dead = await attach(relay, make_conn(), "web_monitor")
        dead.websocket.drop()
        device.websocket.drop()

        await relay.sweep()
        assert relay.registry.device is None
        assert not relay.registry.is_monitor(dead)
        assert sent(live) == [codec.MONITOR_CONNECTED]

    run(scenario())


def test_snapshot(make_conn):
    async def scenario():
        relay = BitRelay()
        await attach(relay, make_conn(), "vibrator_device")
        await attach(relay, make_conn(), "web_monitor")
        snap = relay.snapshot()
        assert snap.device_connected is True
        assert snap.web_clients_count == 1
        assert snap.server_uptime >= 0
        assert set(snap.model_dump(by_alias=True)) == {
            "deviceConnected", "webClientsCount", "serverUptime", "timestamp"}

    run(scenario())
