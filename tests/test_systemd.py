"""
Tests for unit rendering, installation and activation polling.
"""

import pytest

from host_provisioner.errors import CommandFailed, ServiceActivationFailed
from host_provisioner.lib.systemd import activate, install_unit, render_unit, unit_path, wait_active
from host_provisioner.models import DesiredState, ManagedService, ServiceAccount

NODE_EXPORTER = ManagedService(
    name="node_exporter",
    description="Prometheus Node Exporter",
    binary_path="/usr/local/bin/node_exporter",
    exec_start="/usr/local/bin/node_exporter --web.listen-address=10.0.0.5:9100",
    account=ServiceAccount(name="node_exporter"),
    listen="10.0.0.5:9100",
)

EXPECTED_NODE_EXPORTER_UNIT = """\
[Unit]
Description=Prometheus Node Exporter
Wants=network-online.target
After=network-online.target

[Service]
Type=simple
User=node_exporter
Group=node_exporter
ExecStart=/usr/local/bin/node_exporter --web.listen-address=10.0.0.5:9100
Restart=always
RestartSec=10

[Install]
WantedBy=multi-user.target
"""


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, s):
        self.sleeps.append(s)
        self.now += s


class TestRender:
    def test_node_exporter(self):
        assert render_unit(NODE_EXPORTER) == EXPECTED_NODE_EXPORTER_UNIT

    def test_forking_with_pid_file(self):
        svc = ManagedService(
            name="cronicle",
            description="Cronicle",
            exec_start="/opt/cronicle/bin/control.sh start",
            exec_stop="/opt/cronicle/bin/control.sh stop",
            unit_type="forking",
            pid_file="/opt/cronicle/logs/cronicle.pid",
            restart_sec=5,
        )
        text = render_unit(svc)
        assert "Type=forking\nPIDFile=/opt/cronicle/logs/cronicle.pid\n" in text
        assert "ExecStop=/opt/cronicle/bin/control.sh stop\n" in text
        assert "RestartSec=5\n" in text
        assert "User=" not in text


class TestInstall:
    def test_rewrites_stale_unit(self, tmp_path):
        path = unit_path(NODE_EXPORTER, str(tmp_path))
        path.write_text("[Service]\nExecStart=/hand/edited\n")
        assert install_unit(NODE_EXPORTER, unit_dir=str(tmp_path)) is True
        assert path.read_text() == EXPECTED_NODE_EXPORTER_UNIT
        assert path.stat().st_mode & 0o777 == 0o644

    def test_second_install_is_byte_identical(self, tmp_path):
        install_unit(NODE_EXPORTER, unit_dir=str(tmp_path))
        first = unit_path(NODE_EXPORTER, str(tmp_path)).read_bytes()
        assert install_unit(NODE_EXPORTER, unit_dir=str(tmp_path)) is False
        assert unit_path(NODE_EXPORTER, str(tmp_path)).read_bytes() == first
        assert [p.name for p in tmp_path.iterdir()] == ["node_exporter.service"]


class TestWaitActive:
    def test_becomes_active_after_polling(self, fake_host):
        answers = iter([3, 3, 0])
        fake_host.handle("systemctl", "is-active", fn=lambda argv, cwd: (next(answers), "", ""))
        clock = FakeClock()
        wait_active("cronicle", timeout_s=10, interval_s=1, sleep=clock.sleep, clock=clock)
        assert clock.sleeps == [1, 1]
        assert not fake_host.ran("journalctl")

    def test_timeout_dumps_logs(self, fake_host):
        fake_host.on("systemctl", "is-active", rc=3)
        fake_host.on("journalctl", stdout="boom: address already in use\n")
        clock = FakeClock()
        with pytest.raises(ServiceActivationFailed) as exc:
            wait_active("node_exporter", timeout_s=5, interval_s=2, sleep=clock.sleep, clock=clock)
        assert clock.now >= 5
        assert fake_host.ran("journalctl", "-u", "node_exporter", "-n", "50", "--no-pager")
        assert "systemctl status node_exporter" in exc.value.remediation


class TestActivate:
    def test_running_sequence(self, fake_host, no_sleep):
        activate(NODE_EXPORTER, sleep=no_sleep)
        assert fake_host.calls == [
            ["systemctl", "daemon-reload"],
            ["systemctl", "enable", "--quiet", "node_exporter"],
            ["systemctl", "restart", "node_exporter"],
            ["systemctl", "is-active", "--quiet", "node_exporter"],
        ]

    def test_stopped_disables(self, fake_host, no_sleep):
        svc = ManagedService(name="x", description="x", exec_start="/bin/x", desired_state=DesiredState.STOPPED)
        activate(svc, sleep=no_sleep)
        assert fake_host.calls == [
            ["systemctl", "daemon-reload"],
            ["systemctl", "disable", "--now", "--quiet", "x"],
        ]

    def test_restart_failure_propagates(self, fake_host, no_sleep):
        fake_host.on("systemctl", "restart", rc=1, stderr="Job failed")
        with pytest.raises(CommandFailed):
            activate(NODE_EXPORTER, sleep=no_sleep)
        assert not fake_host.ran("systemctl", "is-active")
