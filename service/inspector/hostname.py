"""
Hostname inspector.

Resolves IP address attributes to a host name, reports it, and feeds the
host name back as a new domain attribute so other inspectors get to see it.

Production equivalent:
  Would do a reverse DNS lookup (PTR record) for public addresses and ask the
  asset inventory for internal ones. The interface stays identical; only
  _lookup_hostname changes.
"""

import ipaddress
from typing import Optional

from inspector.base import Inspector
from models import Attribute, AttrType, InspectionContext, ReportHost, TaskResult

_INTERNAL_DOMAIN = "corp.internal"
_EXTERNAL_DOMAIN = "example.net"


def _lookup_hostname(value: str) -> Optional[str]:
    """Simulated PTR lookup. Returns None for anything that isn't an IP."""
    try:
        ip = ipaddress.ip_address(value)
    except ValueError:
        return None

    label = str(ip).replace(".", "-").replace(":", "-")
    if ip.is_private:
        return f"host-{label}.{_INTERNAL_DOMAIN}"
    return f"ip-{label}.{_EXTERNAL_DOMAIN}"


class HostnameInspector(Inspector):
    def inspect(self, ctx: InspectionContext, attr: Attribute) -> Optional[TaskResult]:
        if attr.type != AttrType.ipaddr:
            return None

        hostname = _lookup_hostname(attr.value)
        if hostname is None:
            return None

        return TaskResult(
            contents=[ReportHost(ip_addr=[attr.value], host_name=[hostname])],
            new_attributes=[
                Attribute(type=AttrType.domain, key="hostname", value=hostname, context=attr.context)
            ],
        )


if __name__ == "__main__":
    from inspector.app import run

    run(HostnameInspector())
