"""
Regex detectors for hardcoded credentials, insecure crypto, certificates
and unsafe C library calls.

Each detector reports at most one finding per line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .config import RuleSeverity


@dataclass
class PatternRule:
    name: str
    pattern: str
    severity: RuleSeverity
    message_template: str
    case_sensitive: bool = True
    _regex: re.Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        flags = 0 if self.case_sensitive else re.IGNORECASE
        self._regex = re.compile(self.pattern, flags)

    def search(self, line: str) -> str | None:
        match = self._regex.search(line)
        return match.group(0) if match else None


@dataclass
class SecurityFinding:
    rule: str
    severity: RuleSeverity
    message: str
    line: int


HARDCODED_CREDENTIAL_RULES = [
    PatternRule(
        "aws_key",
        r"(AKIA|AGPA|AIDA|AROA|AIPA|ANPA|ANVA|ASIA)[0-9A-Z]{16}",
        RuleSeverity.ERROR,
        "🔐 AWS access key detected: {matched}. Remove the hardcoded credential.",
    ),
    PatternRule(
        "stripe_key",
        r"(sk_live_|pk_live_|sk_test_|pk_test_)[A-Za-z0-9]{20,}",
        RuleSeverity.ERROR,
        "🔐 Stripe API key detected: {matched}. Remove the hardcoded credential.",
    ),
    PatternRule(
        "github_token",
        r"(ghp_|gho_|ghu_|ghs_|ghr_)[A-Za-z0-9_]{36,255}",
        RuleSeverity.ERROR,
        "🔐 GitHub token detected: {matched}. Remove the hardcoded credential.",
    ),
    PatternRule(
        "jwt_token",
        r"eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+",
        RuleSeverity.ERROR,
        "🔐 JWT token detected: {matched}. Remove the hardcoded credential.",
    ),
    PatternRule(
        "private_key",
        r"-----BEGIN.*PRIVATE KEY-----",
        RuleSeverity.ERROR,
        "🔐 Private key block detected. Load keys from a secret store instead.",
        case_sensitive=False,
    ),
    PatternRule(
        "connection_string_with_creds",
        r"(mongodb|mysql|postgres|mssql)://[^:\s]+:[^@\s]+@",
        RuleSeverity.ERROR,
        "🔐 Connection string with credentials detected: {matched}. "
        "Move credentials to environment variables.",
        case_sensitive=False,
    ),
    PatternRule(
        "suspicious_password_var",
        r"(password|secret|api_key|token|auth)\s*=\s*['\"][^'\"]{8,}['\"]",
        RuleSeverity.WARNING,
        "⚠️  Suspicious variable assignment detected: {matched}. "
        "Review and move to environment variables.",
        case_sensitive=False,
    ),
]

INSECURE_CRYPTO_RULES = [
    PatternRule(
        "md5_usage",
        r"\bmd5\b",
        RuleSeverity.ERROR,
        "🚫 MD5 hash algorithm detected: {matched}. Use SHA-256 or stronger.",
        case_sensitive=False,
    ),
    PatternRule(
        "sha1_usage",
        r"\bsha-?1\b",
        RuleSeverity.ERROR,
        "🚫 SHA-1 algorithm detected: {matched}. Use SHA-256 or stronger.",
        case_sensitive=False,
    ),
    PatternRule(
        "des_usage",
        r"\b(DES|des)\b(?!k)",
        RuleSeverity.ERROR,
        "🚫 DES encryption detected: {matched}. Use AES-256 or stronger.",
        case_sensitive=False,
    ),
    PatternRule(
        "rc4_usage",
        r"\brc4\b",
        RuleSeverity.ERROR,
        "🚫 RC4 cipher detected: {matched}. Use AES-GCM or ChaCha20.",
        case_sensitive=False,
    ),
    PatternRule(
        "blowfish_usage",
        r"\bblowfish\b",
        RuleSeverity.WARNING,
        "⚠️  Blowfish cipher detected: {matched}. Consider AES-256.",
        case_sensitive=False,
    ),
]


CERTIFICATE_RULES = [
    PatternRule(
        "pem_certificate",
        r"-----BEGIN CERTIFICATE-----",
        RuleSeverity.INFO,
        "ℹ️  PEM certificate block detected. Verify certificate validity and key strength.",
    ),
    PatternRule(
        "self_signed_cert",
        r"self.?signed",
        RuleSeverity.INFO,
        "ℹ️  Self-signed certificate detected: {matched}. "
        "Only use it for development or testing.",
        case_sensitive=False,
    ),
]


def function_call_rule(function: str, severity: RuleSeverity, advice: str) -> PatternRule:
    """Match a call to ``function``: its name followed by an opening paren."""
    icon = "❌" if severity is RuleSeverity.ERROR else "⚠️ "
    return PatternRule(
        f"unsafe_{function}",
        rf"\b{re.escape(function)}\s*\(",
        severity,
        f"{icon} Unsafe function '{function}()' detected. {advice}",
    )


# Only run against C sources and headers
INSECURE_C_FUNCTION_RULES = [
    function_call_rule("gets", RuleSeverity.ERROR, "Replace with fgets() for bounds checking."),
    function_call_rule("strcpy", RuleSeverity.ERROR,
                       "Replace with strcpy_s() or snprintf() for bounds checking."),
    function_call_rule("strcat", RuleSeverity.ERROR,
                       "Replace with strcat_s() or snprintf() for bounds checking."),
    function_call_rule("sprintf", RuleSeverity.ERROR, "Replace with snprintf() for bounds checking."),
    function_call_rule("scanf", RuleSeverity.ERROR, "Use fgets() + sscanf() or add width specifiers."),
    function_call_rule("strtok", RuleSeverity.ERROR,
                       "Replace with strtok_s() or strtok_r() for thread safety."),
    function_call_rule("memcpy", RuleSeverity.WARNING, "Consider memcpy_s() for bounds checking."),
]

C_SOURCE_SUFFIXES = (".c", ".h")


class SecurityScanner:
    """Run the security detectors over file contents."""

    def __init__(
        self,
        rules: list[PatternRule] | None = None,
        c_rules: list[PatternRule] | None = None,
    ) -> None:
        if rules is None:
            rules = HARDCODED_CREDENTIAL_RULES + INSECURE_CRYPTO_RULES + CERTIFICATE_RULES
        if c_rules is None:
            c_rules = INSECURE_C_FUNCTION_RULES
        self.rules = rules
        self.c_rules = c_rules

    def scan_file(self, name: str, content: str) -> list[SecurityFinding]:
        """Scan ``content``, adding the C function detectors for C sources."""
        return self.scan_content(content, c_source=name.endswith(C_SOURCE_SUFFIXES))

    def scan_content(self, content: str, c_source: bool = False) -> list[SecurityFinding]:
        rules = self.rules + self.c_rules if c_source else self.rules
        findings = []
        for lineno, line in enumerate(content.splitlines(), start=1):
            for rule in rules:
                matched = rule.search(line)
                if matched is not None:
                    findings.append(SecurityFinding(
                        rule=rule.name,
                        severity=rule.severity,
                        message=rule.message_template.format(matched=matched),
                        line=lineno,
                    ))
        return findings
