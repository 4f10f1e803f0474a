import os
import tempfile
from pathlib import Path

CLUSTERVM_NAME = os.getenv("CLUSTERVM_NAME", "crc")
CLUSTERVM_BASE_DOMAIN = os.getenv("CLUSTERVM_BASE_DOMAIN", "testing")
CLUSTERVM_DISK_IMAGE = os.getenv("CLUSTERVM_DISK_IMAGE", "crc.qcow2")
CLUSTERVM_MAC_ADDRESS = os.getenv("CLUSTERVM_MAC_ADDRESS", "52:fd:fc:07:21:82")
CLUSTERVM_MEMORY_MIB = os.getenv("CLUSTERVM_MEMORY_MIB", "9216")
CLUSTERVM_VCPUS = os.getenv("CLUSTERVM_VCPUS", "4")

CLUSTERVM_NETWORK = os.getenv("CLUSTERVM_NETWORK", "crc")
CLUSTERVM_BRIDGE = os.getenv("CLUSTERVM_BRIDGE", "crc")
CLUSTERVM_GATEWAY = os.getenv("CLUSTERVM_GATEWAY", "192.168.126.1")
CLUSTERVM_NETMASK = os.getenv("CLUSTERVM_NETMASK", "255.255.255.0")
CLUSTERVM_DHCP_START = os.getenv("CLUSTERVM_DHCP_START", "192.168.126.2")
CLUSTERVM_DHCP_END = os.getenv("CLUSTERVM_DHCP_END", "192.168.126.254")
CLUSTERVM_HOST_IP = os.getenv("CLUSTERVM_HOST_IP", "192.168.126.11")

CLUSTERVM_POOL = os.getenv("CLUSTERVM_POOL", "default")
CLUSTERVM_POOL_PATH = os.getenv("CLUSTERVM_POOL_PATH", "/var/lib/libvirt/images")

LIBVIRT_URI = os.getenv("CLUSTERVM_LIBVIRT_URI", "qemu:///system")
HOSTS_FILE = Path(os.getenv("CLUSTERVM_HOSTS_FILE", "/etc/hosts"))
NM_CONF_DIR = Path(os.getenv("CLUSTERVM_NM_CONF_DIR", "/etc/NetworkManager/conf.d"))
NM_DNSMASQ_DIR = Path(os.getenv("CLUSTERVM_NM_DNSMASQ_DIR", "/etc/NetworkManager/dnsmasq.d"))
XDG_RUNTIME_DIR = os.getenv("XDG_RUNTIME_DIR", tempfile.gettempdir())

HOST_PACKAGES = ("libvirt", "libvirt-daemon-kvm", "qemu-kvm")
CPU_VIRTUALIZATION_FLAGS = ("vmx", "svm")
CPUINFO_PATH = Path("/proc/cpuinfo")
FIREWALL_SERVICE = "firewalld"
LIBVIRT_SERVICE = "libvirtd"
DNS_SERVICE = "NetworkManager"
LIBVIRT_TCP_PORT = "16509/tcp"
READY_DELAY_MINUTES = 4
