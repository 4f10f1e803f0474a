import subprocess

import pytest

from clustervm import os as clustervm_os
from clustervm.os import _parse_active_zones
from clustervm.os import _parse_cpu_flags
from clustervm.os import append_line_if_absent
from clustervm.os import execute_cmd
from clustervm.os import get_cmd_output
from clustervm.os import get_file_size
from clustervm.os import has_virtualization_support
from clustervm.os import is_service_active
from clustervm.os import runtime_file
from clustervm.os import write_file_if_absent


INTEL_CPUINFO = (
    "processor\t: 0\n"
    "vendor_id\t: GenuineIntel\n"
    "flags\t\t: fpu vme de pse tsc msr pae vmx ssse3 sse4_1\n"
    "\n"
    "processor\t: 1\n"
    "flags\t\t: fpu vme de pse tsc msr pae vmx ssse3 sse4_1\n"
)

AMD_CPUINFO = "processor\t: 0\nflags\t\t: fpu vme svm lm\n"

NO_VIRT_CPUINFO = "processor\t: 0\nflags\t\t: fpu vme de pse tsc msr\n"


def fake_run(returncode, stdout="", stderr=""):
    calls = []

    def _run(cmd, *args, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)

    return _run, calls


def test_cpu_flags_intel():
    flags = _parse_cpu_flags(INTEL_CPUINFO)
    assert "vmx" in flags
    assert "svm" not in flags


def test_cpu_flags_empty():
    assert _parse_cpu_flags("") == set()


def test_virtualization_intel(tmp_path):
    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text(INTEL_CPUINFO)
    assert has_virtualization_support(cpuinfo, ("vmx", "svm"))


def test_virtualization_amd(tmp_path):
    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text(AMD_CPUINFO)
    assert has_virtualization_support(cpuinfo, ("vmx", "svm"))


def test_virtualization_absent(tmp_path):
    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text(NO_VIRT_CPUINFO)
    assert not has_virtualization_support(cpuinfo, ("vmx", "svm"))


def test_virtualization_missing_file(tmp_path):
    assert not has_virtualization_support(tmp_path / "nope", ("vmx", "svm"))


def test_active_zone_single():
    output = "public\n  interfaces: eth0\n"
    assert _parse_active_zones(output) == "public"


def test_active_zone_takes_first():
    output = (
        "FedoraWorkstation\n"
        "  interfaces: wlp2s0\n"
        "libvirt\n"
        "  interfaces: virbr0\n"
    )
    assert _parse_active_zones(output) == "FedoraWorkstation"


def test_active_zone_none():
    assert _parse_active_zones("") is None


def test_execute_cmd_success(monkeypatch, capsys):
    run, calls = fake_run(0)
    monkeypatch.setattr(clustervm_os.subprocess, "run", run)
    res = execute_cmd(["virsh", "start", "crc"], False)
    assert res.returncode == 0
    assert calls == [["virsh", "start", "crc"]]
    assert capsys.readouterr().out == "virsh start crc\n"


def test_execute_cmd_propagates_exit_code(monkeypatch):
    run, _ = fake_run(3)
    monkeypatch.setattr(clustervm_os.subprocess, "run", run)
    with pytest.raises(SystemExit) as excinfo:
        execute_cmd(["virsh", "start", "crc"], False)
    assert excinfo.value.code == 3


def test_execute_cmd_dry_run(monkeypatch, capsys):
    run, calls = fake_run(0)
    monkeypatch.setattr(clustervm_os.subprocess, "run", run)
    res = execute_cmd(["sysctl", "-w", "net.ipv4.ip_forward=1"], True)
    assert res is None
    assert not calls
    assert "sysctl -w net.ipv4.ip_forward=1" in capsys.readouterr().out


def test_cmd_output(monkeypatch):
    run, _ = fake_run(0, stdout="public\n")
    monkeypatch.setattr(clustervm_os.subprocess, "run", run)
    assert get_cmd_output(["firewall-cmd", "--get-active-zones"]) == "public\n"


def test_cmd_output_failure(monkeypatch):
    run, _ = fake_run(252, stderr="FirewallD is not running\n")
    monkeypatch.setattr(clustervm_os.subprocess, "run", run)
    with pytest.raises(SystemExit) as excinfo:
        get_cmd_output(["firewall-cmd", "--get-active-zones"])
    assert excinfo.value.code == 252


def test_write_file_absent(tmp_path):
    path = tmp_path / "dnsmasq.d" / "crc.conf"
    assert write_file_if_absent(path, "server=/crc.testing/192.168.126.1\n", False)
    assert path.read_text() == "server=/crc.testing/192.168.126.1\n"


def test_write_file_present(tmp_path):
    path = tmp_path / "crc.conf"
    path.write_text("custom\n")
    assert not write_file_if_absent(path, "new\n", False)
    assert path.read_text() == "custom\n"


def test_write_file_dry_run(tmp_path):
    path = tmp_path / "crc.conf"
    assert write_file_if_absent(path, "new\n", True)
    assert not path.exists()


def test_append_line_absent(tmp_path):
    hosts = tmp_path / "hosts"
    hosts.write_text("127.0.0.1 localhost\n")
    assert append_line_if_absent(hosts, "192.168.126.11 api.crc.testing", False)
    assert hosts.read_text() == "127.0.0.1 localhost\n192.168.126.11 api.crc.testing\n"


def test_append_line_no_trailing_newline(tmp_path):
    hosts = tmp_path / "hosts"
    hosts.write_text("127.0.0.1 localhost")
    append_line_if_absent(hosts, "192.168.126.11 api.crc.testing", False)
    assert hosts.read_text() == "127.0.0.1 localhost\n192.168.126.11 api.crc.testing\n"


def test_append_line_present(tmp_path):
    hosts = tmp_path / "hosts"
    content = "127.0.0.1 localhost\n192.168.126.11 api.crc.testing\n"
    hosts.write_text(content)
    assert not append_line_if_absent(hosts, "192.168.126.11 api.crc.testing", False)
    assert hosts.read_text() == content


def test_append_line_missing_file(tmp_path):
    hosts = tmp_path / "hosts"
    append_line_if_absent(hosts, "192.168.126.11 api.crc.testing", False)
    assert hosts.read_text() == "192.168.126.11 api.crc.testing\n"


def test_file_size(tmp_path):
    image = tmp_path / "crc.qcow2"
    image.write_bytes(b"\0" * 4096)
    assert get_file_size(image) == 4096


def test_file_size_missing(tmp_path):
    with pytest.raises(SystemExit):
        get_file_size(tmp_path / "missing.qcow2")


def missing_binary(cmd, *args, **kwargs):
    raise FileNotFoundError(2, "No such file or directory", cmd[0])


def test_execute_cmd_missing_binary(monkeypatch):
    monkeypatch.setattr(clustervm_os.subprocess, "run", missing_binary)
    with pytest.raises(SystemExit) as excinfo:
        execute_cmd(["dnf", "install", "-y", "libvirt"], False)
    assert excinfo.value.code == "dnf: command not found"


def test_cmd_output_missing_binary(monkeypatch):
    monkeypatch.setattr(clustervm_os.subprocess, "run", missing_binary)
    with pytest.raises(SystemExit) as excinfo:
        get_cmd_output(["firewall-cmd", "--get-active-zones"])
    assert excinfo.value.code == "firewall-cmd: command not found"


def test_service_active_missing_systemctl(monkeypatch):
    monkeypatch.setattr(clustervm_os.subprocess, "run", missing_binary)
    with pytest.raises(SystemExit) as excinfo:
        is_service_active("firewalld")
    assert excinfo.value.code == "systemctl: command not found"


def test_runtime_file_removed_after_use(tmp_path):
    path = tmp_path / "clustervm-crc-domain.xml"
    with runtime_file(path, "<domain/>", False) as xml_path:
        assert xml_path.read_text() == "<domain/>"
    assert not path.exists()


def test_runtime_file_removed_on_failure(tmp_path):
    path = tmp_path / "clustervm-crc-domain.xml"
    with pytest.raises(SystemExit):
        with runtime_file(path, "<domain/>", False):
            raise SystemExit(1)
    assert not path.exists()


def test_runtime_file_dry_run(tmp_path, capsys):
    path = tmp_path / "clustervm-crc-domain.xml"
    with runtime_file(path, "<domain/>", True) as xml_path:
        assert xml_path == path
        assert not path.exists()
    assert f"Writing {path}" in capsys.readouterr().out
