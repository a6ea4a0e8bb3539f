"""Resource kinds managed by the engine.

Each kind maps a RouterOS menu path to its fields. REGISTRY is built once at
import and is read-only afterwards.
"""
from .properties import (
    KEY_ARP,
    KEY_ARP_TIMEOUT,
    KEY_COMMENT,
    KEY_DISABLED,
    KEY_DYNAMIC,
    KEY_INTERFACE,
    KEY_INVALID,
    KEY_L2MTU,
    KEY_ACTUAL_MTU,
    KEY_MTU,
    KEY_NAME,
    KEY_PLACE_BEFORE,
    KEY_RUNNING,
    PROP_ACTUAL_MTU_RO,
    PROP_ARP_RW,
    PROP_ARP_TIMEOUT_RW,
    PROP_COMMENT_RW,
    PROP_DISABLED_RW,
    PROP_DYNAMIC_RO,
    PROP_INTERFACE_RW,
    PROP_INVALID_RO,
    PROP_L2MTU_RO,
    PROP_NAME_RW,
    PROP_PLACE_BEFORE,
    PROP_RUNNING_RO,
    VALIDATION_AUTO_YES_NO,
    VALIDATION_HEX_NUMBER,
    VALIDATION_IP_ADDRESS,
    hex_equal,
    int_between,
    prop_duration_rw,
    prop_mtu_rw,
    string_in_slice,
)
from .schema import (
    Encoding,
    Field,
    FieldMode,
    FieldType,
    IdType,
    Placement,
    ResourceRegistry,
    ResourceSchema,
)

SYSTEM_SCHEDULER = ResourceSchema(
    kind="system_scheduler",
    path="/system/scheduler",
    id_type=IdType.NAME,
    description="Run scripts at a given time or interval.",
    fields={
        KEY_NAME: PROP_NAME_RW,
        "on_event": Field(
            mode=FieldMode.REQUIRED,
            description="Name of the script to execute, or the script source itself.",
        ),
        "interval": prop_duration_rw(
            "Interval between two script executions. 0s runs the script once at start time.",
            default="0s",
        ),
        "start_date": Field(description="Date of the first script execution."),
        "start_time": Field(
            description="Time of the first script execution, or 'startup'.",
        ),
        "policy": Field(
            type=FieldType.LIST,
            description="List of policies the scheduled script runs with.",
        ),
        KEY_COMMENT: PROP_COMMENT_RW,
        KEY_DISABLED: PROP_DISABLED_RW,
        "owner": Field(mode=FieldMode.COMPUTED),
        "run_count": Field(
            mode=FieldMode.COMPUTED,
            description="How many times the script has been executed.",
        ),
        "next_run": Field(mode=FieldMode.COMPUTED),
    },
)

SYSTEM_SCRIPT = ResourceSchema(
    kind="system_script",
    path="/system/script",
    id_type=IdType.NAME,
    description="Stored scripts.",
    fields={
        KEY_NAME: PROP_NAME_RW,
        "source": Field(mode=FieldMode.REQUIRED, description="Script source code."),
        "policy": Field(type=FieldType.LIST, default=["read", "write", "test"]),
        "dont_require_permissions": Field(
            type=FieldType.BOOL,
            default=False,
            description="Bypass permissions check when the script is being executed.",
        ),
        KEY_COMMENT: PROP_COMMENT_RW,
        "owner": Field(mode=FieldMode.COMPUTED),
        "run_count": Field(mode=FieldMode.COMPUTED),
        "last_started": Field(mode=FieldMode.COMPUTED),
        KEY_INVALID: PROP_INVALID_RO,
    },
)

INTERFACE_BRIDGE = ResourceSchema(
    kind="interface_bridge",
    path="/interface/bridge",
    id_type=IdType.NAME,
    fields={
        KEY_NAME: PROP_NAME_RW,
        KEY_MTU: prop_mtu_rw(),
        KEY_ARP: PROP_ARP_RW,
        KEY_ARP_TIMEOUT: PROP_ARP_TIMEOUT_RW,
        "ageing_time": prop_duration_rw(
            "How long a host's information will be kept in the bridge database.",
        ),
        "vlan_filtering": Field(
            type=FieldType.BOOL,
            default=False,
            description="Globally enables or disables VLAN functionality for the bridge.",
        ),
        "ether_type": Field(
            encoding=Encoding.HEX,
            validator=VALIDATION_HEX_NUMBER,
            diff_suppress=hex_equal,
            description="Service VLAN tag EtherType (0x8100, 0x88a8, 0x9100).",
        ),
        "protocol_mode": Field(
            default="rstp",
            validator=string_in_slice(["none", "rstp", "stp", "mstp"]),
        ),
        KEY_COMMENT: PROP_COMMENT_RW,
        KEY_DISABLED: PROP_DISABLED_RW,
        KEY_ACTUAL_MTU: PROP_ACTUAL_MTU_RO,
        KEY_L2MTU: PROP_L2MTU_RO,
        "mac_address": Field(mode=FieldMode.COMPUTED),
        KEY_RUNNING: PROP_RUNNING_RO,
    },
)

INTERFACE_VLAN = ResourceSchema(
    kind="interface_vlan",
    path="/interface/vlan",
    id_type=IdType.NAME,
    fields={
        KEY_NAME: PROP_NAME_RW,
        KEY_INTERFACE: PROP_INTERFACE_RW,
        "vlan_id": Field(
            type=FieldType.INT,
            mode=FieldMode.REQUIRED,
            validator=int_between(1, 4094),
            description="Virtual LAN identifier or tag that is used to distinguish VLANs.",
        ),
        KEY_MTU: prop_mtu_rw(),
        KEY_ARP: PROP_ARP_RW,
        KEY_ARP_TIMEOUT: PROP_ARP_TIMEOUT_RW,
        "use_service_tag": Field(type=FieldType.BOOL, description="802.1ad compatible Service Tag."),
        KEY_COMMENT: PROP_COMMENT_RW,
        KEY_DISABLED: PROP_DISABLED_RW,
        KEY_L2MTU: PROP_L2MTU_RO,
        KEY_RUNNING: PROP_RUNNING_RO,
    },
)

IP_ADDRESS = ResourceSchema(
    kind="ip_address",
    path="/ip/address",
    id_type=IdType.ID,
    fields={
        "address": Field(
            mode=FieldMode.REQUIRED,
            validator=VALIDATION_IP_ADDRESS,
            description="IP address (CIDR notation).",
        ),
        KEY_INTERFACE: PROP_INTERFACE_RW,
        "network": Field(
            mode=FieldMode.COMPUTED,
            description="IP address for the network.",
        ),
        KEY_COMMENT: PROP_COMMENT_RW,
        KEY_DISABLED: PROP_DISABLED_RW,
        KEY_DYNAMIC: PROP_DYNAMIC_RO,
        KEY_INVALID: PROP_INVALID_RO,
        "actual_interface": Field(mode=FieldMode.COMPUTED),
    },
)

IP_DHCP_CLIENT = ResourceSchema(
    kind="ip_dhcp_client",
    path="/ip/dhcp-client",
    id_type=IdType.ID,
    fields={
        KEY_INTERFACE: PROP_INTERFACE_RW,
        "add_default_route": Field(
            default="yes",
            validator=VALIDATION_AUTO_YES_NO,
            description="Whether to install default route in routing table received from DHCP server.",
        ),
        "default_route_distance": Field(
            type=FieldType.INT,
            validator=int_between(0, 255),
        ),
        "use_peer_dns": Field(
            type=FieldType.BOOL,
            encoding=Encoding.YES_NO,
            default=True,
            description="Whether to accept the DNS settings advertised by DHCP server.",
        ),
        "use_peer_ntp": Field(
            type=FieldType.BOOL,
            encoding=Encoding.YES_NO,
            default=True,
            description="Whether to accept the NTP settings advertised by DHCP server.",
        ),
        "dhcp_options": Field(type=FieldType.LIST, description="Options sent to the DHCP server."),
        KEY_COMMENT: PROP_COMMENT_RW,
        KEY_DISABLED: PROP_DISABLED_RW,
        "address": Field(mode=FieldMode.COMPUTED),
        "gateway": Field(mode=FieldMode.COMPUTED),
        "status": Field(mode=FieldMode.COMPUTED),
        KEY_DYNAMIC: PROP_DYNAMIC_RO,
        KEY_INVALID: PROP_INVALID_RO,
    },
)

IP_FIREWALL_FILTER = ResourceSchema(
    kind="ip_firewall_filter",
    path="/ip/firewall/filter",
    id_type=IdType.ID,
    placement=Placement.MOVE,
    description="Firewall filter rules. Rule order matters.",
    fields={
        "chain": Field(mode=FieldMode.REQUIRED, description="Chain the rule belongs to."),
        "action": Field(
            default="accept",
            validator=string_in_slice([
                "accept", "add-dst-to-address-list", "add-src-to-address-list",
                "drop", "fasttrack-connection", "jump", "log", "passthrough",
                "reject", "return", "tarpit",
            ]),
        ),
        "src_address": Field(validator=VALIDATION_IP_ADDRESS),
        "dst_address": Field(validator=VALIDATION_IP_ADDRESS),
        "protocol": Field(),
        "dst_port": Field(),
        "in_interface": Field(),
        "out_interface": Field(),
        "connection_state": Field(type=FieldType.LIST),
        "log": Field(type=FieldType.BOOL, default=False),
        "log_prefix": Field(),
        KEY_PLACE_BEFORE: PROP_PLACE_BEFORE,
        KEY_COMMENT: PROP_COMMENT_RW,
        KEY_DISABLED: PROP_DISABLED_RW,
        KEY_DYNAMIC: PROP_DYNAMIC_RO,
        KEY_INVALID: PROP_INVALID_RO,
        "bytes": Field(type=FieldType.INT, mode=FieldMode.COMPUTED),
        "packets": Field(type=FieldType.INT, mode=FieldMode.COMPUTED),
    },
)


REGISTRY = ResourceRegistry([
    SYSTEM_SCHEDULER,
    SYSTEM_SCRIPT,
    INTERFACE_BRIDGE,
    INTERFACE_VLAN,
    IP_ADDRESS,
    IP_DHCP_CLIENT,
    IP_FIREWALL_FILTER,
])


def define(kind: str) -> ResourceSchema:
    """Get a shipped resource schema by kind."""
    return REGISTRY.define(kind)


def fields(kind: str) -> dict:
    """Describe a resource kind for documentation and input validation."""
    return REGISTRY.define(kind).to_dict()
