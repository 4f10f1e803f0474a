import subprocess
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable


def _run(cmd: list[str], **kwargs) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(cmd, **kwargs)
    except FileNotFoundError:
        sys.exit(f"{cmd[0]}: command not found")


def execute_cmd(cmd: list[str], dry_run: bool):
    print(" ".join(cmd))
    if dry_run:
        return
    res = _run(cmd)
    if res.returncode == 0:
        return res
    sys.exit(res.returncode)


def get_cmd_output(cmd: list[str]) -> str:
    res = _run(cmd, capture_output=True, text=True)
    if res.returncode != 0:
        if res.stderr:
            print(res.stderr, end="", file=sys.stderr)
        sys.exit(res.returncode)
    return res.stdout


def _parse_cpu_flags(cpuinfo: str) -> set[str]:
    flags = set()
    for line in cpuinfo.splitlines():
        key, _, value = line.partition(":")
        if key.strip() not in ("flags", "Features"):
            continue
        flags.update(value.split())
    return flags


def has_virtualization_support(cpuinfo_path: Path, required_flags: Iterable[str]) -> bool:
    try:
        cpuinfo = cpuinfo_path.read_text()
    except OSError:
        return False
    flags = _parse_cpu_flags(cpuinfo)
    return any(flag in flags for flag in required_flags)


def is_service_active(service: str) -> bool:
    res = _run(["systemctl", "is-active", "--quiet", service])
    return res.returncode == 0


def _parse_active_zones(output: str) -> str | None:
    # zone names are the unindented lines, their bindings follow indented
    for line in output.splitlines():
        if not line.strip() or line[0].isspace():
            continue
        return line.strip()
    return None


def get_active_zone() -> str:
    output = get_cmd_output(["firewall-cmd", "--get-active-zones"])
    zone = _parse_active_zones(output)
    if not zone:
        sys.exit("firewalld reports no active zone")
    return zone


def write_file_if_absent(path: Path, content: str, dry_run: bool) -> bool:
    if path.exists():
        return False
    print(f"Writing {path}")
    if dry_run:
        return True
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return True


def append_line_if_absent(path: Path, line: str, dry_run: bool) -> bool:
    try:
        existing = path.read_text()
    except FileNotFoundError:
        existing = ""

    if line in (current.strip() for current in existing.splitlines()):
        return False

    print(f"Appending '{line}' to {path}")
    if dry_run:
        return True
    separator = "" if not existing or existing.endswith("\n") else "\n"
    with path.open("a") as fh:
        fh.write(f"{separator}{line}\n")
    return True


def get_file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as e:
        sys.exit(f"Unable to read disk image '{path}': {e.strerror}")


@contextmanager
def runtime_file(path: Path, content: str, dry_run: bool):
    print(f"Writing {path}")
    if dry_run:
        yield path
        return
    path.write_text(content)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
