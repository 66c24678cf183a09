"""Client configuration and how it is derived from Hadoop configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from .hadoopconf import HadoopConf


class DataTransferProtection(str, Enum):
    """Protection level required when talking to datanodes."""

    AUTHENTICATION = "authentication"
    INTEGRITY = "integrity"
    PRIVACY = "privacy"


@dataclass
class KerberosClient:
    """A Kerberos client; it must carry credentials before it can be used."""

    credentials: Any = None


DialFunc = Callable[..., Any]


@dataclass
class ClientOptions:
    """Configurable options for a client.

    ``user`` is required unless Kerberos is enabled. When ``kerberos_client``
    is set, ``kerberos_service_principle_name`` (which may use ``_HOST``) is
    required too.
    """

    addresses: list[str] = field(default_factory=list)
    user: str = ""
    use_datanode_hostname: bool = False
    namenode_dial_func: Optional[DialFunc] = None
    datanode_dial_func: Optional[DialFunc] = None
    kerberos_client: Optional[KerberosClient] = None
    kerberos_service_principle_name: str = ""
    data_transfer_protection: Optional[DataTransferProtection] = None
    # Set when SASL is configured without dfs.encrypt.data.transfer: the
    # handshake is then skipped for datanodes on privileged ports.
    skip_sasl_for_privileged_datanode_ports: bool = False


def client_options_from_conf(conf: Optional[Mapping[str, str]]) -> ClientOptions:
    """Build ClientOptions from a Hadoop configuration.

    If hadoop.security.authentication is 'kerberos', ``kerberos_client`` is
    set to a client without credentials, which must be replaced (or removed)
    before a connection is made.
    """
    conf = HadoopConf(conf or {})
    options = ClientOptions(addresses=conf.namenodes())

    options.use_datanode_hostname = conf.get("dfs.client.use.datanode.hostname") == "true"

    if conf.get("hadoop.security.authentication", "").lower() == "kerberos":
        options.kerberos_client = KerberosClient()

    principal = conf.get("dfs.namenode.kerberos.principal", "")
    if principal:
        options.kerberos_service_principle_name = principal.split("@")[0]

    # The highest listed level wins; the names happen to sort in order.
    levels = sorted(conf.get("dfs.data.transfer.protection", "").lower().split(","))
    for level in levels:
        try:
            options.data_transfer_protection = DataTransferProtection(level)
        except ValueError:
            continue

    if conf.get("dfs.encrypt.data.transfer", "").lower() == "true":
        options.data_transfer_protection = DataTransferProtection.PRIVACY
    else:
        options.skip_sasl_for_privileged_datanode_ports = True

    return options