"""
TOR exit node inspector.

Flags IP address attributes that belong to a known TOR exit relay.

Production equivalent:
  Would fetch the Tor Project's bulk exit node list periodically and cache it:
    GET https://check.torproject.org/torbulkexitlist
  Returns plain text, one IP per line. The list would be refreshed every few
  hours.

Simulation approach:
  A hardcoded set of realistic-looking IPs acts as the "cached" exit node list.
"""

from typing import Optional

from inspector.base import Inspector
from models import Attribute, AttrType, EntityActivity, InspectionContext, ReportHost, TaskResult

MOCK_TOR_EXIT_NODES: frozenset = frozenset(
    {
        "185.220.101.35",
        "185.220.101.47",
        "104.244.72.115",
        "199.87.154.255",
        "162.247.74.27",
        "176.10.104.240",
        "51.15.43.205",
        "45.33.32.156",
        "23.129.64.131",
        "204.13.164.118",
        "171.25.193.77",
        "94.230.208.147",
        "77.247.181.163",
        "193.11.114.43",
        "37.187.129.166",
        "217.170.205.14",
        "80.67.172.162",
        "195.176.3.19",
        "109.70.100.28",
        "46.165.230.5",
    }
)


class TorExitInspector(Inspector):
    """Reports a host section for IPs on the exit node list, nothing otherwise."""

    def inspect(self, ctx: InspectionContext, attr: Attribute) -> Optional[TaskResult]:
        if attr.type != AttrType.ipaddr or attr.value not in MOCK_TOR_EXIT_NODES:
            return None

        host = ReportHost(
            ip_addr=[attr.value],
            activities=[EntityActivity(service_name="tor", action="exit-relay", remote_addr=attr.value)],
        )
        return TaskResult(contents=[host])


if __name__ == "__main__":
    from inspector.app import run

    run(TorExitInspector(), port=8002)
