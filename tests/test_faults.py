"""
Faults System (faults/)

Tests Fault, FaultDomain, Severity and the HTTP / config fault types.
"""

import pytest

from halyard.faults import (
    DOMAIN_DEFAULTS,
    ActionConfigFault,
    BadRequestFault,
    ConfigFault,
    Fault,
    FaultDomain,
    ForbiddenFault,
    HTTPFault,
    NotFoundFault,
    Severity,
)


# ============================================================================
# Severity
# ============================================================================

class TestSeverity:

    def test_values(self):
        assert Severity.INFO == "info"
        assert Severity.WARN == "warn"
        assert Severity.ERROR == "error"
        assert Severity.FATAL == "fatal"

    def test_aliases(self):
        assert Severity.LOW == Severity.INFO
        assert Severity.MEDIUM == Severity.WARN
        assert Severity.HIGH == Severity.ERROR
        assert Severity.CRITICAL == Severity.FATAL


# ============================================================================
# FaultDomain
# ============================================================================

class TestFaultDomain:

    def test_standard_domains(self):
        assert FaultDomain.CONFIG.name == "config"
        assert FaultDomain.ROUTING.name == "routing"
        assert FaultDomain.FLOW.name == "flow"
        assert FaultDomain.SECURITY.name == "security"
        assert FaultDomain.HTTP.name == "http"
        assert FaultDomain.SYSTEM.name == "system"

    def test_custom_domain(self):
        custom = FaultDomain("payments", "Payment errors")
        assert custom.name == "payments"
        assert custom.description == "Payment errors"

    def test_equality_and_hash(self):
        assert FaultDomain("x") == FaultDomain("x")
        assert FaultDomain("x") != FaultDomain("y")
        assert FaultDomain("routing") in DOMAIN_DEFAULTS


# ============================================================================
# Fault
# ============================================================================

class TestFault:

    def test_basic_fault(self):
        f = Fault(code="ERR", message="Something wrong", domain=FaultDomain.FLOW)
        assert f.severity == Severity.ERROR
        assert f.retryable is False
        assert f.public is False
        assert str(f) == "[ERR] Something wrong"

    def test_missing_fields(self):
        with pytest.raises(TypeError):
            Fault(code="ERR")

    def test_class_attribute_defaults(self):
        class Maintenance(Fault):
            code = "MAINTENANCE"
            message = "Down for maintenance"
            domain = FaultDomain.SYSTEM

        f = Maintenance()
        assert f.code == "MAINTENANCE"
        assert f.severity == Severity.FATAL

    def test_to_dict(self):
        f = Fault(code="E", message="m", domain=FaultDomain.SECURITY, metadata={"k": 1})
        assert f.to_dict() == {
            "code": "E",
            "message": "m",
            "domain": "security",
            "severity": "error",
            "retryable": False,
            "public": False,
            "metadata": {"k": 1},
        }


# ============================================================================
# Domain faults
# ============================================================================

class TestDomainFaults:

    def test_http_fault_default_message(self):
        f = HTTPFault(503)
        assert f.status == 503
        assert f.message == "Service Unavailable"
        assert f.code == "HTTP_503"
        assert f.public is True
        assert f.domain == FaultDomain.HTTP
        assert f.to_dict()["status"] == 503

    def test_http_fault_unknown_status(self):
        assert HTTPFault(799).message == "Unknown error"

    def test_not_found(self):
        f = NotFoundFault("missing", action="edit")
        assert f.status == 404
        assert f.code == "ACTION_NOT_FOUND"
        assert f.domain == FaultDomain.ROUTING
        assert f.metadata == {"status": 404, "action": "edit"}
        assert isinstance(f, HTTPFault)

    def test_bad_request(self):
        f = BadRequestFault()
        assert f.status == 400
        assert f.message == "Your request is invalid."
        assert f.severity == Severity.WARN
        assert f.domain == FaultDomain.FLOW

    def test_forbidden(self):
        f = ForbiddenFault(metadata={"controller": "post"})
        assert f.status == 403
        assert f.domain == FaultDomain.SECURITY
        assert f.metadata["controller"] == "post"

    def test_action_config_fault(self):
        f = ActionConfigFault("broken", reason="missing_run")
        assert isinstance(f, ConfigFault)
        assert f.code == "ACTION_CONFIG_INVALID"
        assert f.severity == Severity.FATAL
        assert f.public is False
        assert f.metadata == {"reason": "missing_run"}

    def test_faults_are_exceptions(self):
        with pytest.raises(Fault):
            raise NotFoundFault("nope")
