import ipaddress
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ClusterVmException(Exception):
    pass


class DomainStateEnum(Enum):
    NOSTATE = 0
    RUNNING = 1
    BLOCKED = 2
    PAUSED = 3
    SHUTDOWN = 4
    SHUTOFF = 5
    CRASHED = 6
    PMSUSPENDED = 7
    LAST = 8


@dataclass(frozen=True)
class DomainInfo:
    name: str
    UUID: str
    state: DomainStateEnum
    active: bool


@dataclass(frozen=True)
class PoolInfo:
    name: str
    UUID: str
    path: Path
    active: bool
    autostart: bool


@dataclass(frozen=True)
class NetworkInfo:
    name: str
    UUID: str
    active: bool


@dataclass(frozen=True)
class DhcpConfig:
    network_name: str
    bridge: str
    gateway: str
    netmask: str
    range_start: str
    range_end: str
    host_ip: str

    @property
    def subnet(self) -> str:
        network = ipaddress.IPv4Network(f"{self.gateway}/{self.netmask}", strict=False)
        return network.with_prefixlen


@dataclass(frozen=True)
class ClusterConfig:
    vm_name: str
    base_domain: str
    disk_image: Path
    mac_address: str
    dhcp: DhcpConfig
    pool_name: str = "default"
    pool_path: Path = Path("/var/lib/libvirt/images")
    memory_mib: int = 9216
    vcpus: int = 4

    @property
    def cluster_domain(self) -> str:
        return f"{self.vm_name}.{self.base_domain}"

    @property
    def apps_domain(self) -> str:
        return f"apps-{self.vm_name}.{self.base_domain}"

    @property
    def volume_name(self) -> str:
        return f"{self.vm_name}.qcow2"
