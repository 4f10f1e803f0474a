import functools
import sys
import xml.etree.ElementTree as ET
from pathlib import Path

import libvirt
from libvirt import libvirtError

from clustervm.constants import LIBVIRT_URI
from clustervm.types import ClusterVmException
from clustervm.types import DomainInfo
from clustervm.types import DomainStateEnum
from clustervm.types import NetworkInfo
from clustervm.types import PoolInfo


@functools.cache
def _libvirt_connection():
    try:
        conn = libvirt.open(LIBVIRT_URI)
    except libvirtError as e:
        sys.exit(f"Unable to connect to libvirt at '{LIBVIRT_URI}': {e}")
    return conn


def _get_pool_path(xml: str) -> Path:
    tree = ET.fromstring(xml)
    for path_node in tree.findall(".//target/path"):
        if path_value := path_node.text:
            return Path(path_value)
    raise ClusterVmException("<path> element not found")


def get_pool_info(name: str) -> PoolInfo | None:
    conn = _libvirt_connection()
    try:
        pool = conn.storagePoolLookupByName(name)
    except libvirtError:
        return None

    return PoolInfo(
        name=pool.name(),
        UUID=pool.UUIDString(),
        path=_get_pool_path(pool.XMLDesc()),
        active=bool(pool.isActive()),
        autostart=bool(pool.autostart()),
    )


def get_network_info(name: str) -> NetworkInfo | None:
    conn = _libvirt_connection()
    try:
        network = conn.networkLookupByName(name)
    except libvirtError:
        return None

    return NetworkInfo(
        name=network.name(),
        UUID=network.UUIDString(),
        active=bool(network.isActive()),
    )


def get_domain_info(name: str) -> DomainInfo | None:
    conn = _libvirt_connection()
    try:
        domain = conn.lookupByName(name)
    except libvirtError:
        return None

    state, _ = domain.state()
    return DomainInfo(
        name=domain.name(),
        UUID=domain.UUIDString(),
        state=DomainStateEnum(state),
        active=bool(domain.isActive()),
    )
