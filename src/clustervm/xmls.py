# xml formats for libvirt
from xml.sax.saxutils import escape

from clustervm.types import ClusterConfig


cluster_network_xml = """
<network>
  <name>{network_name}</name>
  <forward mode='nat'/>
  <bridge name='{bridge}' stp='on' delay='0'/>
  <domain name='{cluster_domain}' localOnly='yes'/>
  <dns>
    <host ip='{host_ip}'>
      <hostname>api.{cluster_domain}</hostname>
      <hostname>api-int.{cluster_domain}</hostname>
      <hostname>{vm_name}.{cluster_domain}</hostname>
    </host>
  </dns>
  <ip address='{gateway}' netmask='{netmask}'>
    <dhcp>
      <range start='{range_start}' end='{range_end}'/>
      <host mac='{mac_address}' name='{vm_name}.{cluster_domain}' ip='{host_ip}'/>
    </dhcp>
  </ip>
</network>
"""

cluster_domain_xml = """
<domain type='kvm'>
  <name>{vm_name}</name>
  <memory unit='MiB'>{memory_mib}</memory>
  <currentMemory unit='MiB'>{memory_mib}</currentMemory>
  <vcpu placement='static'>{vcpus}</vcpu>
  <os>
    <type arch='x86_64'>hvm</type>
    <boot dev='hd'/>
  </os>
  <features>
    <acpi/>
    <apic/>
  </features>
  <cpu mode='host-passthrough'/>
  <clock offset='utc'/>
  <on_poweroff>destroy</on_poweroff>
  <on_reboot>restart</on_reboot>
  <on_crash>destroy</on_crash>
  <devices>
    <disk type='volume' device='disk'>
      <driver name='qemu' type='qcow2' cache='none'/>
      <source pool='{pool_name}' volume='{volume_name}'/>
      <target dev='vda' bus='virtio'/>
    </disk>
    <interface type='network'>
      <mac address='{mac_address}'/>
      <source network='{network_name}'/>
      <model type='virtio'/>
    </interface>
    <serial type='pty'>
      <target port='0'/>
    </serial>
    <console type='pty'>
      <target type='serial' port='0'/>
    </console>
    <graphics type='vnc' port='-1' autoport='yes' listen='127.0.0.1'/>
    <memballoon model='virtio'/>
    <rng model='virtio'>
      <backend model='random'>/dev/urandom</backend>
    </rng>
  </devices>
</domain>
"""


def _quote(value) -> str:
    return escape(str(value), {"'": "&apos;", '"': "&quot;"})


def _render(template: str, **values) -> str:
    return template.format(**{key: _quote(value) for key, value in values.items()})


def render_network_xml(config: ClusterConfig) -> str:
    dhcp = config.dhcp
    return _render(
        cluster_network_xml,
        network_name=dhcp.network_name,
        bridge=dhcp.bridge,
        cluster_domain=config.cluster_domain,
        vm_name=config.vm_name,
        host_ip=dhcp.host_ip,
        gateway=dhcp.gateway,
        netmask=dhcp.netmask,
        range_start=dhcp.range_start,
        range_end=dhcp.range_end,
        mac_address=config.mac_address,
    )


def render_domain_xml(config: ClusterConfig) -> str:
    return _render(
        cluster_domain_xml,
        vm_name=config.vm_name,
        memory_mib=config.memory_mib,
        vcpus=config.vcpus,
        pool_name=config.pool_name,
        volume_name=config.volume_name,
        mac_address=config.mac_address,
        network_name=config.dhcp.network_name,
    )


def render_nm_dnsmasq_conf() -> str:
    return "[main]\ndns=dnsmasq\n"


def render_dnsmasq_overlay(config: ClusterConfig) -> str:
    return (
        f"server=/{config.cluster_domain}/{config.dhcp.gateway}\n"
        f"address=/{config.apps_domain}/{config.dhcp.host_ip}\n"
    )
