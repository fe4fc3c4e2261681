"""
Tests for channel configuration and runtime reconfiguration.

Covers:
- ChannelConfig validation from YAML and dicts
- Token names in config
- IOChannel.configure()
- ChannelReconfig name-based control
"""

import pytest
import yaml
from pydantic import ValidationError

from iochannel.config import ChannelConfig, EchoConfig, SinkConfig
from iochannel.core import IOChannel
from iochannel.reconfig import ChannelReconfig
from iochannel.sinks import FileSink, RingBufferSink, TerminalSink
from iochannel.tokens import Category, Ctrl, EchoMode, Verbosity

FULL_YAML = """
verbosity: chatty
muted: [debug]
echo:
  mode: print
  verbosity: normal
  category: all
sinks:
  recent:
    type: ring
    ring_buffer_size: 50
  errors:
    type: file
    path: {path}
    categories: [warning, error]
  console:
    type: terminal
    max_verbosity: quiet
    color: false
"""


@pytest.fixture(autouse=True)
def reset_channel():
    IOChannel.reset()
    yield
    IOChannel.reset()


# ═══════════════════════════════════════════════════════════════════
#  ChannelConfig
# ═══════════════════════════════════════════════════════════════════

class TestChannelConfig:
    def test_defaults(self):
        config = ChannelConfig()
        assert config.verbosity is Verbosity.TMI
        assert config.muted == []
        assert config.echo is None
        assert config.sinks is None

    def test_empty_yaml_is_defaults(self):
        assert ChannelConfig.from_yaml_string("") == ChannelConfig()

    def test_full_yaml(self, tmp_path):
        config = ChannelConfig.from_yaml_string(FULL_YAML.format(path=tmp_path / "e.log"))
        assert config.verbosity is Verbosity.CHATTY
        assert config.muted == [Category.DEBUG]
        assert config.echo == EchoConfig(
            mode=EchoMode.PRINT, verbosity=Verbosity.NORMAL, category=Category.ALL
        )
        assert config.sinks["recent"].ring_buffer_size == 50
        assert config.sinks["errors"].categories == [Category.WARNING, Category.ERROR]
        assert config.sinks["console"].max_verbosity is Verbosity.QUIET
        assert config.sinks["console"].color is False

    def test_numeric_values(self):
        config = ChannelConfig.from_dict({"verbosity": 1, "muted": [0, 3]})
        assert config.verbosity is Verbosity.NORMAL
        assert config.muted == [Category.NORMAL, Category.ERROR]

    def test_single_muted_name(self):
        assert ChannelConfig.from_dict({"muted": "warning"}).muted == [Category.WARNING]

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "iochannel.yaml"
        path.write_text("verbosity: quiet\n", encoding="utf-8")
        assert ChannelConfig.from_yaml(path).verbosity is Verbosity.QUIET

    def test_invalid_verbosity(self):
        with pytest.raises(ValidationError):
            ChannelConfig.from_dict({"verbosity": "loud"})

    def test_invalid_sink_type(self):
        with pytest.raises(ValidationError):
            SinkConfig(type="database")

    def test_invalid_echo_mode(self):
        with pytest.raises(ValidationError):
            EchoConfig(mode="printf")

    def test_to_dict_uses_names(self):
        config = ChannelConfig.from_dict({
            "verbosity": 2,
            "muted": ["debug"],
            "echo": {"mode": "stream"},
            "sinks": {"recent": {"type": "ring", "ring_buffer_size": 10}},
        })
        data = config.to_dict()
        assert data["verbosity"] == "chatty"
        assert data["muted"] == ["debug"]
        assert data["echo"] == {"mode": "stream", "verbosity": "tmi", "category": "all"}
        assert data["sinks"]["recent"] == {
            "type": "ring", "max_verbosity": "tmi", "ring_buffer_size": 10,
        }

    def test_to_dict_round_trips_through_yaml(self):
        config = ChannelConfig.from_dict({"verbosity": "normal", "muted": ["error"]})
        again = ChannelConfig.from_yaml_string(yaml.safe_dump(config.to_dict()))
        assert again == config


# ═══════════════════════════════════════════════════════════════════
#  IOChannel.configure
# ═══════════════════════════════════════════════════════════════════

class TestConfigure:
    def test_configure_from_yaml(self, tmp_path, capsys):
        ioc = IOChannel.instance()
        log_path = tmp_path / "e.log"
        ioc.configure(ChannelConfig.from_yaml_string(FULL_YAML.format(path=log_path)))

        assert ioc.process_verbosity is Verbosity.CHATTY
        assert ioc.muted == [Category.DEBUG]
        assert ioc.echo.mode is EchoMode.PRINT
        assert isinstance(ioc.get_sink("recent"), RingBufferSink)
        assert isinstance(ioc.get_sink("errors"), FileSink)
        assert isinstance(ioc.get_sink("console"), TerminalSink)
        assert ioc.get_sink("recent").capacity == 50

        ioc << Category.WARNING << "careful" << Ctrl.END
        ioc.flush()
        assert log_path.read_text(encoding="utf-8") == "careful\n"

    def test_configure_from_dict(self):
        ioc = IOChannel.instance()
        ioc.configure({"verbosity": "normal", "muted": ["debug", "warning"]})
        assert ioc.process_verbosity is Verbosity.NORMAL
        assert ioc.muted == [Category.DEBUG, Category.WARNING]

    def test_configure_filters_messages(self):
        ioc = IOChannel.instance()
        ioc.configure({"verbosity": "quiet", "sinks": {"ring": {"type": "ring"}}})
        ioc << Verbosity.NORMAL << "dropped" << Ctrl.END
        ioc << Verbosity.QUIET << "kept" << Ctrl.END
        assert [r.text for r in ioc.get_sink("ring").get_recent()] == ["kept\n"]

    def test_configure_sink_filters(self):
        ioc = IOChannel.instance()
        ioc.configure({
            "sinks": {"errors": {"type": "ring", "categories": "error"}},
        })
        ioc << "normal" << Ctrl.END
        ioc << Category.ERROR << "bad" << Ctrl.END
        assert [r.text for r in ioc.get_sink("errors").get_recent()] == ["bad\n"]

    def test_configure_muting_everything_warns(self, capsys):
        ioc = IOChannel.instance()
        ioc.configure({"muted": ["normal", "debug", "warning", "error"]})
        assert "All message categories have been turned off" in capsys.readouterr().out


# ═══════════════════════════════════════════════════════════════════
#  ChannelReconfig
# ═══════════════════════════════════════════════════════════════════

class TestChannelReconfig:
    def test_defaults_to_singleton(self):
        reconfig = ChannelReconfig()
        reconfig.mute("debug")
        assert IOChannel.instance().muted == [Category.DEBUG]

    def test_mute_unmute_by_name(self):
        reconfig = ChannelReconfig(IOChannel())
        reconfig.mute("debug")
        reconfig.mute("WARNING")
        assert reconfig.list_muted() == ["debug", "warning"]
        reconfig.unmute("debug")
        assert reconfig.list_muted() == ["warning"]
        reconfig.unmute()
        assert reconfig.list_muted() == []

    def test_verbosity_by_name(self):
        reconfig = ChannelReconfig(IOChannel())
        reconfig.set_verbosity("normal")
        assert reconfig.get_verbosity() == "normal"

    def test_unknown_name(self):
        reconfig = ChannelReconfig(IOChannel())
        with pytest.raises(ValueError, match="Unknown Category"):
            reconfig.mute("trace")

    def test_configure_echo(self, capsys):
        ioc = IOChannel()
        ChannelReconfig(ioc).configure_echo("print", "quiet")
        ioc << "hidden" << Ctrl.END
        ioc << Verbosity.QUIET << "shown" << Ctrl.END
        assert capsys.readouterr().out == "shown\n"

    def test_ring_buffer_access(self):
        ioc = IOChannel()
        ioc.add_sink(RingBufferSink())
        reconfig = ChannelReconfig(ioc)
        ioc << "n" << Ctrl.END
        ioc << Category.ERROR << "e" << Ctrl.END

        recent = reconfig.get_ring_buffer()
        assert [r["text"] for r in recent] == ["n\n", "e\n"]
        errors = reconfig.get_ring_buffer(categories=["error"])
        assert [r["category"] for r in errors] == ["ERROR"]

        reconfig.clear_ring_buffer()
        assert reconfig.get_ring_buffer() == []

    def test_missing_ring_buffer(self):
        reconfig = ChannelReconfig(IOChannel())
        assert reconfig.get_ring_buffer() == []
        reconfig.clear_ring_buffer()

    def test_status(self):
        ioc = IOChannel()
        reconfig = ChannelReconfig(ioc)
        reconfig.mute("error")
        assert reconfig.status()["filter"]["muted"] == ["ERROR"]
