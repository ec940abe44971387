import math

import pytest

from controllers.command_channel import CommandChannel
from infra.settings_store import CoilSettingsStore
from model.channel import Axis, CoilChannel, Parameter
from model.status import SendStatus


@pytest.fixture
def sender(transport):
    transport.open("/dev/ttyACM0")
    return CommandChannel(transport)


@pytest.fixture
def channel(sender):
    return CoilChannel(sender, Axis.Y)


def test_command_suffixes(channel, transport):
    channel.set_offset(1)
    channel.set_amplitude(2)
    channel.set_frequency(3)

    assert transport.written == [
        b"coil.y.current 1\r\n",
        b"coil.y.modulation.amplitude 2\r\n",
        b"coil.y.modulation.frequency 3\r\n",
    ]
    assert (channel.get_offset(), channel.get_amplitude(), channel.get_frequency()) == (1, 2, 3)


def test_confirmed_write_commits_and_notifies_once(qtbot, channel):
    with qtbot.waitSignal(channel.amplitude_changed, timeout=100) as blocker:
        status = channel.set_amplitude(0.0123456789)

    assert status is SendStatus.CONFIRMED
    assert blocker.args == [0.012346]
    assert channel.get(Parameter.AMPLITUDE) == 0.012346


def test_wrong_response_leaves_value_untouched(qtbot, channel, transport):
    channel.set_frequency(10)
    transport.responses.append(b"# coil.y.modulation.frequency(20) = 10\r\n")

    with qtbot.assertNotEmitted(channel.frequency_changed):
        status = channel.set_frequency(20)

    assert status is SendStatus.WRONG_RESPONSE
    assert channel.get_frequency() == 10


def test_already_set_does_not_notify(qtbot, channel, transport):
    channel.set_offset(0.5)
    with qtbot.assertNotEmitted(channel.offset_changed):
        assert channel.set_offset(0.5) is SendStatus.ALREADY_SET
    assert len(transport.written) == 1


def test_error_leaves_value_untouched(channel, transport):
    transport.writable = False
    assert channel.set_offset(4.0) is SendStatus.ERROR
    assert channel.get_offset() == 0.0


def test_channel_without_axis_is_inert(sender, transport):
    channel = CoilChannel(sender, None)
    assert channel.set_offset(1.0) is None
    assert transport.written == []
    assert channel.command_prefix() == ""


def test_load_settings_goes_through_confirmed_writes(channel, transport, tmp_path):
    store = CoilSettingsStore(path=tmp_path / "channel.ini")
    with store.group("dev", "y"):
        store.set_value("offset", 1.5)
        store.set_value("frequency", 50.0)

    with store.group("dev", "y"):
        channel.load_settings(store)

    assert transport.written == [
        b"coil.y.current 1.5\r\n",
        b"coil.y.modulation.amplitude nan\r\n",
        b"coil.y.modulation.frequency 50\r\n",
    ]
    assert channel.get_offset() == 1.5
    # the device rejects the missing amplitude, so the default stays
    assert channel.get_amplitude() == 0.0
    assert channel.get_frequency() == 50.0


def test_save_settings_writes_in_memory_values(channel, tmp_path, transport):
    channel.set_frequency(12.5)
    transport.written.clear()
    store = CoilSettingsStore(path=tmp_path / "channel.ini")

    with store.group("dev", "y"):
        channel.save_settings(store)
        assert store.float_value("frequency") == 12.5
        assert store.float_value("offset") == 0.0
    assert transport.written == []


def test_parameter_and_axis_lookup():
    assert Parameter.from_name("Frequency") is Parameter.FREQUENCY
    assert Parameter.from_name("phase") is None
    assert Axis.from_name(" z ") is Axis.Z
    assert Axis.from_name(None) is None
    assert math.isnan(CoilSettingsStore(path=None).float_value("missing"))


@pytest.mark.parametrize(
    "parameter, emitted, silent",
    [
        (Parameter.OFFSET, "offset_changed", ("amplitude_changed", "frequency_changed")),
        (Parameter.AMPLITUDE, "amplitude_changed", ("offset_changed", "frequency_changed")),
        (Parameter.FREQUENCY, "frequency_changed", ("offset_changed", "amplitude_changed")),
    ],
)
def test_each_parameter_notifies_only_its_own_signal(qtbot, channel, parameter, emitted, silent):
    with qtbot.assertNotEmitted(getattr(channel, silent[0])), qtbot.assertNotEmitted(
        getattr(channel, silent[1])
    ):
        with qtbot.waitSignal(getattr(channel, emitted), timeout=100) as blocker:
            channel.set_parameter(parameter, 4.25)

    assert blocker.args == [4.25]
