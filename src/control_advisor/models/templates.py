"""Template tables for control implementation suggestions.

Contains the static family templates, keyword patterns and canned
default field sets used by the suggestion strategies. Every template
implementation text is authored to fit within 250 characters.
"""
from __future__ import annotations

from enum import Enum

from control_advisor.models.suggestion import FieldSet


class ImplementationStatus(str, Enum):
    """Control implementation status."""
    EFFECTIVE = "effective"
    NOT_ASSESSED = "not-assessed"


class ControlType(str, Enum):
    """How the control operates."""
    AUTOMATED = "Automated"
    ORCHESTRATED = "Orchestrated"
    PROCESS = "Process"
    POLICY = "Policy"


class TestingMethod(str, Enum):
    AUTOMATED = "Automated by Tools"
    MANUAL = "Manual Testing"


class TestingFrequency(str, Enum):
    CONTINUOUS = "Continuous"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    ANNUALLY = "Annually"


class RiskRating(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def _template(
    implementation: str,
    control_type: ControlType,
    testing_method: TestingMethod,
    testing_frequency: TestingFrequency,
    risk_rating: RiskRating,
) -> FieldSet:
    return FieldSet(
        status=ImplementationStatus.EFFECTIVE.value,
        implementation=implementation,
        responsible_party="Shared",
        control_type=control_type.value,
        testing_method=testing_method.value,
        testing_frequency=testing_frequency.value,
        risk_rating=risk_rating.value,
    )


ACCESS_CONTROL = _template(
    "Access control is implemented through a role-based access control (RBAC) system. "
    "Users are assigned roles based on job functions, access follows least privilege, "
    "and access requests are approved by authorized personnel.",
    ControlType.AUTOMATED, TestingMethod.AUTOMATED, TestingFrequency.CONTINUOUS, RiskRating.LOW,
)

AUDIT_LOGGING = _template(
    "Audit logs capture security-relevant events including authentication, authorization "
    "decisions, data access, and administrative actions. Logs are stored securely, "
    "protected from tampering, and reviewed regularly.",
    ControlType.AUTOMATED, TestingMethod.AUTOMATED, TestingFrequency.DAILY, RiskRating.LOW,
)

CONFIGURATION_MANAGEMENT = _template(
    "Baseline configurations are maintained in a version-controlled configuration management "
    "system. Configuration changes require approval and are tracked through the change "
    "management process.",
    ControlType.ORCHESTRATED, TestingMethod.MANUAL, TestingFrequency.MONTHLY, RiskRating.MEDIUM,
)

AUTHENTICATION = _template(
    "Multi-factor authentication (MFA) is required for all user accounts. Password-based "
    "authentication is combined with additional factors such as authenticator apps or "
    "hardware tokens.",
    ControlType.AUTOMATED, TestingMethod.AUTOMATED, TestingFrequency.CONTINUOUS, RiskRating.LOW,
)

INCIDENT_RESPONSE = _template(
    "Incident response procedures are documented and tested regularly. Security incidents "
    "are detected, analyzed, contained, and remediated by a trained incident response team.",
    ControlType.PROCESS, TestingMethod.MANUAL, TestingFrequency.QUARTERLY, RiskRating.MEDIUM,
)

ENCRYPTION = _template(
    "Data in transit is protected using TLS 1.2 or higher and data at rest is encrypted "
    "with industry-standard algorithms. Encryption keys are managed securely and rotated "
    "regularly.",
    ControlType.AUTOMATED, TestingMethod.AUTOMATED, TestingFrequency.CONTINUOUS, RiskRating.LOW,
)

NETWORK_SECURITY = _template(
    "Network security is implemented through firewalls, intrusion detection and prevention "
    "systems, and network segmentation. Network traffic is monitored and analyzed for "
    "suspicious activity.",
    ControlType.AUTOMATED, TestingMethod.AUTOMATED, TestingFrequency.CONTINUOUS, RiskRating.LOW,
)

MALWARE_PROTECTION = _template(
    "Anti-malware software is installed on all systems with automatically updated "
    "definitions. Systems are scanned regularly, and detected threats are quarantined "
    "and removed.",
    ControlType.AUTOMATED, TestingMethod.AUTOMATED, TestingFrequency.DAILY, RiskRating.LOW,
)

VULNERABILITY_MANAGEMENT = _template(
    "Vulnerability scanning is performed regularly using automated tools. Findings are "
    "prioritized by severity and remediated within defined timelines, and security patches "
    "are applied through the patch management process.",
    ControlType.ORCHESTRATED, TestingMethod.AUTOMATED, TestingFrequency.WEEKLY, RiskRating.MEDIUM,
)

CONTINGENCY_PLANNING = _template(
    "Backups of critical systems and data are performed on a defined schedule and stored at "
    "a separate location. Recovery procedures are documented in the contingency plan and "
    "tested periodically.",
    ControlType.ORCHESTRATED, TestingMethod.MANUAL, TestingFrequency.QUARTERLY, RiskRating.MEDIUM,
)

AWARENESS_TRAINING = _template(
    "Security awareness training is provided to all personnel during onboarding and annually "
    "thereafter. Training completion is tracked, and role-based training is delivered to "
    "users with security responsibilities.",
    ControlType.PROCESS, TestingMethod.MANUAL, TestingFrequency.ANNUALLY, RiskRating.MEDIUM,
)

PHYSICAL_ACCESS = _template(
    "Physical access to facilities housing information systems is restricted to authorized "
    "personnel through badge readers and visitor logs. Access lists are reviewed periodically "
    "and entry points are monitored.",
    ControlType.ORCHESTRATED, TestingMethod.MANUAL, TestingFrequency.QUARTERLY, RiskRating.MEDIUM,
)

# Family templates. Keys are matched as substrings of the control search
# text in insertion order; several keys may point at the same template.
CONTROL_TEMPLATES: dict[str, dict[str, FieldSet]] = {
    "AC": {
        "access-control": ACCESS_CONTROL,
        "access control": ACCESS_CONTROL,
        "account": ACCESS_CONTROL,
        "least privilege": ACCESS_CONTROL,
    },
    "AU": {
        "audit-logging": AUDIT_LOGGING,
        "audit": AUDIT_LOGGING,
        "event logging": AUDIT_LOGGING,
    },
    "CM": {
        "configuration-management": CONFIGURATION_MANAGEMENT,
        "configuration": CONFIGURATION_MANAGEMENT,
        "baseline": CONFIGURATION_MANAGEMENT,
    },
    "IA": {
        "authentication": AUTHENTICATION,
        "identification": AUTHENTICATION,
    },
    "IR": {
        "incident-response": INCIDENT_RESPONSE,
        "incident": INCIDENT_RESPONSE,
    },
    "SC": {
        "encryption": ENCRYPTION,
        "cryptographic": ENCRYPTION,
        "network-security": NETWORK_SECURITY,
        "boundary protection": NETWORK_SECURITY,
    },
    "SI": {
        "malware-protection": MALWARE_PROTECTION,
        "malicious code": MALWARE_PROTECTION,
        "vulnerability-management": VULNERABILITY_MANAGEMENT,
        "flaw remediation": VULNERABILITY_MANAGEMENT,
    },
    "CP": {
        "backup": CONTINGENCY_PLANNING,
        "contingency": CONTINGENCY_PLANNING,
    },
    "AT": {
        "training": AWARENESS_TRAINING,
        "awareness": AWARENESS_TRAINING,
    },
    "PE": {
        "physical access": PHYSICAL_ACCESS,
        "physical": PHYSICAL_ACCESS,
    },
}

# Keyword categories scanned in order; two hits select the category template
CONTROL_PATTERNS: dict[str, list[str]] = {
    "access": ["access", "authorization", "permission", "privilege", "rbac", "role"],
    "audit": ["audit", "logging", "log", "monitoring", "accountability"],
    "authentication": ["authentication", "identity", "mfa", "multi-factor", "password", "credential"],
    "encryption": ["encryption", "encrypt", "cryptography", "tls", "ssl", "cipher"],
    "network": ["network", "firewall", "intrusion", "segmentation", "traffic"],
    "incident": ["incident", "response", "breach", "security event"],
    "vulnerability": ["vulnerability", "patch", "scanning", "cve", "flaw"],
    "malware": ["malware", "antivirus", "anti-malware", "virus", "malicious code"],
    "configuration": ["configuration", "baseline", "change management", "config"],
    "backup": ["backup", "recovery", "disaster", "continuity"],
    "training": ["training", "awareness", "education"],
    "physical": ["physical", "facility", "badge", "visitor"],
}

PATTERN_MIN_MATCHES = 2

CATEGORY_TEMPLATES: dict[str, FieldSet] = {
    "access": ACCESS_CONTROL,
    "audit": AUDIT_LOGGING,
    "authentication": AUTHENTICATION,
    "encryption": ENCRYPTION,
    "network": NETWORK_SECURITY,
    "incident": INCIDENT_RESPONSE,
    "vulnerability": VULNERABILITY_MANAGEMENT,
    "malware": MALWARE_PROTECTION,
    "configuration": CONFIGURATION_MANAGEMENT,
    "backup": CONTINGENCY_PLANNING,
    "training": AWARENESS_TRAINING,
    "physical": PHYSICAL_ACCESS,
}

# Canned field sets for the generic default strategy
POLICY_DEFAULT = FieldSet(
    status=ImplementationStatus.EFFECTIVE.value,
    implementation=(
        "This control is implemented through documented policies and procedures. "
        "Policies are reviewed and updated regularly to ensure they remain current and effective."
    ),
    responsible_party="Shared",
    control_type=ControlType.POLICY.value,
    testing_method=TestingMethod.MANUAL.value,
    testing_frequency=TestingFrequency.ANNUALLY.value,
    risk_rating=RiskRating.MEDIUM.value,
)

MONITORING_DEFAULT = FieldSet(
    status=ImplementationStatus.EFFECTIVE.value,
    implementation=(
        "Continuous monitoring and detection capabilities are implemented through automated "
        "security tools. Events are analyzed in real-time, and alerts are generated for "
        "suspicious activities."
    ),
    responsible_party="Shared",
    control_type=ControlType.AUTOMATED.value,
    testing_method=TestingMethod.AUTOMATED.value,
    testing_frequency=TestingFrequency.CONTINUOUS.value,
    risk_rating=RiskRating.LOW.value,
)

GENERIC_DEFAULT = FieldSet(
    status=ImplementationStatus.NOT_ASSESSED.value,
    implementation=(
        "This control is implemented based on organizational requirements and system "
        "architecture. Appropriate security measures are in place and aligned with the "
        "control description."
    ),
    responsible_party="Shared",
    control_type=ControlType.ORCHESTRATED.value,
    testing_method=TestingMethod.MANUAL.value,
    testing_frequency=TestingFrequency.QUARTERLY.value,
    risk_rating=RiskRating.MEDIUM.value,
)

# Title keywords selecting a canned default, checked in order
DEFAULT_TITLE_KEYWORDS: list[tuple[tuple[str, ...], FieldSet]] = [
    (("policy", "procedure"), POLICY_DEFAULT),
    (("monitoring", "detection"), MONITORING_DEFAULT),
]
