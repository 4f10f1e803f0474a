import sys
import argparse
from pathlib import Path

from clustervm.constants import CLUSTERVM_BASE_DOMAIN
from clustervm.constants import CLUSTERVM_BRIDGE
from clustervm.constants import CLUSTERVM_DHCP_END
from clustervm.constants import CLUSTERVM_DHCP_START
from clustervm.constants import CLUSTERVM_DISK_IMAGE
from clustervm.constants import CLUSTERVM_GATEWAY
from clustervm.constants import CLUSTERVM_HOST_IP
from clustervm.constants import CLUSTERVM_MAC_ADDRESS
from clustervm.constants import CLUSTERVM_MEMORY_MIB
from clustervm.constants import CLUSTERVM_NAME
from clustervm.constants import CLUSTERVM_NETMASK
from clustervm.constants import CLUSTERVM_NETWORK
from clustervm.constants import CLUSTERVM_POOL
from clustervm.constants import CLUSTERVM_POOL_PATH
from clustervm.constants import CLUSTERVM_VCPUS
from clustervm.constants import CPU_VIRTUALIZATION_FLAGS
from clustervm.constants import CPUINFO_PATH
from clustervm.constants import DNS_SERVICE
from clustervm.constants import FIREWALL_SERVICE
from clustervm.constants import HOST_PACKAGES
from clustervm.constants import HOSTS_FILE
from clustervm.constants import LIBVIRT_SERVICE
from clustervm.constants import LIBVIRT_TCP_PORT
from clustervm.constants import LIBVIRT_URI
from clustervm.constants import NM_CONF_DIR
from clustervm.constants import NM_DNSMASQ_DIR
from clustervm.constants import READY_DELAY_MINUTES
from clustervm.constants import XDG_RUNTIME_DIR
from clustervm.libvirt import get_domain_info
from clustervm.libvirt import get_network_info
from clustervm.libvirt import get_pool_info
from clustervm.os import append_line_if_absent
from clustervm.os import execute_cmd
from clustervm.os import get_active_zone
from clustervm.os import get_file_size
from clustervm.os import has_virtualization_support
from clustervm.os import is_service_active
from clustervm.os import runtime_file
from clustervm.os import write_file_if_absent
from clustervm.types import ClusterConfig
from clustervm.types import DhcpConfig
from clustervm.xmls import render_dnsmasq_overlay
from clustervm.xmls import render_domain_xml
from clustervm.xmls import render_network_xml
from clustervm.xmls import render_nm_dnsmasq_conf

COMMANDS = ("create", "start", "stop", "delete")


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        sys.exit(f"{name} must be an integer, got '{value}'")


def get_cluster_config() -> ClusterConfig:
    dhcp = DhcpConfig(
        network_name=CLUSTERVM_NETWORK,
        bridge=CLUSTERVM_BRIDGE,
        gateway=CLUSTERVM_GATEWAY,
        netmask=CLUSTERVM_NETMASK,
        range_start=CLUSTERVM_DHCP_START,
        range_end=CLUSTERVM_DHCP_END,
        host_ip=CLUSTERVM_HOST_IP,
    )
    return ClusterConfig(
        vm_name=CLUSTERVM_NAME,
        base_domain=CLUSTERVM_BASE_DOMAIN,
        disk_image=Path(CLUSTERVM_DISK_IMAGE),
        mac_address=CLUSTERVM_MAC_ADDRESS,
        dhcp=dhcp,
        pool_name=CLUSTERVM_POOL,
        pool_path=Path(CLUSTERVM_POOL_PATH),
        memory_mib=_env_int("CLUSTERVM_MEMORY_MIB", CLUSTERVM_MEMORY_MIB),
        vcpus=_env_int("CLUSTERVM_VCPUS", CLUSTERVM_VCPUS),
    )


def virsh_cmd(*args: str) -> list[str]:
    return ["virsh", "--connect", LIBVIRT_URI, *args]


def _runtime_xml_path(name: str) -> Path:
    return Path(XDG_RUNTIME_DIR) / f"clustervm-{name}.xml"


def check_prerequisites():
    if not has_virtualization_support(CPUINFO_PATH, CPU_VIRTUALIZATION_FLAGS):
        sys.exit(
            "Virtualization extensions (vmx/svm) not available on this host. "
            "Enable VT-x/AMD-V in firmware settings"
        )
    if not is_service_active(FIREWALL_SERVICE):
        sys.exit(f"{FIREWALL_SERVICE} is not running. Start it with 'systemctl start {FIREWALL_SERVICE}'")


def prepare_host(config: ClusterConfig, dry_run: bool):
    execute_cmd(["dnf", "install", "-y", *HOST_PACKAGES], dry_run)
    execute_cmd(["systemctl", "enable", "--now", LIBVIRT_SERVICE], dry_run)
    execute_cmd(["sysctl", "-w", "net.ipv4.ip_forward=1"], dry_run)

    zone = get_active_zone()
    execute_cmd(["firewall-cmd", f"--zone={zone}", f"--add-source={config.dhcp.subnet}"], dry_run)
    execute_cmd(["firewall-cmd", f"--zone={zone}", f"--add-port={LIBVIRT_TCP_PORT}"], dry_run)


def ensure_storage_pool(config: ClusterConfig, dry_run: bool):
    pool = get_pool_info(config.pool_name)
    if pool is None:
        define_cmd = virsh_cmd(
            "pool-define-as", config.pool_name, "dir",
            "--target", config.pool_path.as_posix(),
        )
        execute_cmd(define_cmd, dry_run)
    if pool is None or not pool.active:
        execute_cmd(virsh_cmd("pool-start", config.pool_name), dry_run)
    if pool is None or not pool.autostart:
        execute_cmd(virsh_cmd("pool-autostart", config.pool_name), dry_run)


def ensure_dns_overlay(config: ClusterConfig, dry_run: bool):
    overlay_files = {
        NM_CONF_DIR / f"{config.vm_name}-nm-dnsmasq.conf": render_nm_dnsmasq_conf(),
        NM_DNSMASQ_DIR / f"{config.vm_name}.conf": render_dnsmasq_overlay(config),
    }
    written = [
        write_file_if_absent(path, content, dry_run)
        for path, content in overlay_files.items()
    ]
    if any(written):
        execute_cmd(["systemctl", "restart", DNS_SERVICE], dry_run)

    hosts_entry = f"{config.dhcp.host_ip} api.{config.cluster_domain}"
    append_line_if_absent(HOSTS_FILE, hosts_entry, dry_run)


def create_network(config: ClusterConfig, dry_run: bool):
    network_name = config.dhcp.network_name
    xml_path = _runtime_xml_path(f"{network_name}-network")
    with runtime_file(xml_path, render_network_xml(config), dry_run):
        execute_cmd(virsh_cmd("net-define", xml_path.as_posix()), dry_run)
    execute_cmd(virsh_cmd("net-start", network_name), dry_run)


def create_volume(config: ClusterConfig, dry_run: bool):
    image_size = get_file_size(config.disk_image)
    create_cmd = virsh_cmd(
        "vol-create-as", config.pool_name, config.volume_name, str(image_size),
        "--format", "qcow2",
    )
    execute_cmd(create_cmd, dry_run)
    upload_cmd = virsh_cmd(
        "vol-upload", "--pool", config.pool_name,
        config.volume_name, config.disk_image.as_posix(),
    )
    execute_cmd(upload_cmd, dry_run)


def create_domain(config: ClusterConfig, dry_run: bool):
    xml_path = _runtime_xml_path(f"{config.vm_name}-domain")
    with runtime_file(xml_path, render_domain_xml(config), dry_run):
        execute_cmd(virsh_cmd("define", xml_path.as_posix()), dry_run)


def handle_create(args):
    config = get_cluster_config()
    check_prerequisites()
    prepare_host(config, args.dry_run)
    ensure_storage_pool(config, args.dry_run)
    ensure_dns_overlay(config, args.dry_run)
    create_network(config, args.dry_run)
    create_volume(config, args.dry_run)
    create_domain(config, args.dry_run)
    if args.dry_run:
        return
    print(f"VM '{config.vm_name}' defined. Run 'clustervm start' to boot it")


def handle_start(args):
    config = get_cluster_config()
    execute_cmd(virsh_cmd("start", config.vm_name), args.dry_run)
    print(f"Cluster will be ready in approximately {READY_DELAY_MINUTES} minutes")


def handle_stop(args):
    config = get_cluster_config()
    execute_cmd(virsh_cmd("shutdown", config.vm_name), args.dry_run)


def handle_delete(args):
    config = get_cluster_config()
    network_name = config.dhcp.network_name

    domain = get_domain_info(config.vm_name)
    if domain and domain.active:
        execute_cmd(virsh_cmd("destroy", config.vm_name), args.dry_run)
    execute_cmd(virsh_cmd("undefine", config.vm_name), args.dry_run)

    delete_vol_cmd = virsh_cmd("vol-delete", "--pool", config.pool_name, config.volume_name)
    execute_cmd(delete_vol_cmd, args.dry_run)

    network = get_network_info(network_name)
    if network and network.active:
        execute_cmd(virsh_cmd("net-destroy", network_name), args.dry_run)
    execute_cmd(virsh_cmd("net-undefine", network_name), args.dry_run)


# --- Main argument parser --- #
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clustervm",
        description="Single-node cluster VM lifecycle (clustervm)",
        epilog=(
            "commands:\n"
            "  create   prepare the host and define the cluster VM\n"
            "  start    start the cluster VM\n"
            "  stop     gracefully shut down the cluster VM\n"
            "  delete   remove the cluster VM, its volume and network"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", nargs="?", metavar="{" + ",".join(COMMANDS) + "}",
                        help="Lifecycle action to perform")
    parser.add_argument("-n", "--dry-run", action="store_true",
                        help="Don't run external commands")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    match args.command:
        case "create":
            handle_create(args)
        case "start":
            handle_start(args)
        case "stop":
            handle_stop(args)
        case "delete":
            handle_delete(args)
        case None:
            parser.print_help()
        case _:
            parser.print_help()
            sys.exit(1)


if __name__ == '__main__':
    main()
