"""
Tests for the sample inspectors.

Focus: inspector output validity and the decline-with-None contract.
"""

from inspector.hostname import HostnameInspector
from inspector.runtime import dry_run
from inspector.tor_exit import MOCK_TOR_EXIT_NODES, TorExitInspector
from models import Attribute, AttrType, ReportHost


def _ip(value: str) -> Attribute:
    return Attribute(type=AttrType.ipaddr, key="src", value=value, context=["remote"])


class TestHostnameInspector:
    def test_reports_hostname_for_ip(self):
        result = dry_run(HostnameInspector(), _ip("8.8.8.8"))
        (content,) = result.contents
        assert isinstance(content, ReportHost)
        assert content.ip_addr == ["8.8.8.8"]
        assert content.host_name == ["ip-8-8-8-8.example.net"]

    def test_private_ip_resolves_to_internal_domain(self):
        result = dry_run(HostnameInspector(), _ip("10.0.0.1"))
        assert result.contents[0].host_name == ["host-10-0-0-1.corp.internal"]

    def test_feeds_hostname_back_as_domain_attribute(self):
        result = dry_run(HostnameInspector(), _ip("8.8.8.8"))
        (new_attr,) = result.new_attributes
        assert new_attr.type == AttrType.domain
        assert new_attr.value == "ip-8-8-8-8.example.net"
        assert new_attr.context == ["remote"]

    def test_declines_non_ip_attributes(self):
        attr = Attribute(type=AttrType.username, key="user", value="alice")
        assert dry_run(HostnameInspector(), attr) is None

    def test_declines_malformed_ip(self):
        assert dry_run(HostnameInspector(), _ip("not-an-ip")) is None


class TestTorExitInspector:
    def test_flags_known_exit_node(self):
        tor_ip = next(iter(MOCK_TOR_EXIT_NODES))
        result = dry_run(TorExitInspector(), _ip(tor_ip))
        (content,) = result.contents
        assert content.ip_addr == [tor_ip]
        assert content.activities[0].service_name == "tor"
        assert result.new_attributes == []

    def test_declines_clean_ip(self):
        assert dry_run(TorExitInspector(), _ip("8.8.8.8")) is None

    def test_declines_domain_with_exit_node_value(self):
        tor_ip = next(iter(MOCK_TOR_EXIT_NODES))
        attr = Attribute(type=AttrType.domain, key="host", value=tor_ip)
        assert dry_run(TorExitInspector(), attr) is None
