# incidenthook/services/rules.py
import re
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Pattern, Tuple

FAILED_LOGIN = "FAILED_LOGIN"
ADMIN_ACCESS = "ADMIN_ACCESS"
SQL_INJECTION_PATTERN = "SQL_INJECTION_PATTERN"
SUSPICIOUS_USER_AGENT = "SUSPICIOUS_USER_AGENT"
BRUTE_FORCE = "brute-force"

# Tabla fija: rule -> severidad
SEVERITY: Dict[str, str] = {
    FAILED_LOGIN: "medium",
    ADMIN_ACCESS: "high",
    SQL_INJECTION_PATTERN: "critical",
    SUSPICIOUS_USER_AGENT: "medium",
}

DESCRIPTION: Dict[str, str] = {
    FAILED_LOGIN: "Failed login attempt",
    ADMIN_ACCESS: "Admin user access attempt",
    SQL_INJECTION_PATTERN: "Possible SQL injection",
    SUSPICIOUS_USER_AGENT: "Suspicious user agent / scanner",
}

FAILED_LOGIN_RE = re.compile(
    r"failed\s+login|login\s+failed|authentication\s+failed|invalid\s+credentials"
    r"|failed\s+password|status=failed",
    re.I,
)
ADMIN_RE = re.compile(r"\b(?:user|username|login)\s*[=:]\s*['\"]?admin\b", re.I)
SQLI_RES: Tuple[Pattern, ...] = (
    re.compile(r"\bunion\b(?:\s|%20|\+|/\*.*?\*/)+(?:all\s+)?select\b", re.I),
    re.compile(r"\bselect\s+\*\s+from\b", re.I),
    re.compile(r"\b(?:or|and|where)\s+(\d+)\s*=\s*\1\b", re.I),          # or 1=1 / where 1=1
    re.compile(r"['\"]\s*(?:or|and)\s+['\"]?(\w+)['\"]?\s*=\s*['\"]?\1", re.I),  # ' or 'a'='a
    re.compile(r"'\s*(?:--|#|/\*)"),                                     # comilla + comentario
    re.compile(r";\s*(?:drop|delete|truncate|alter|insert|update)\s+\w+", re.I),
    re.compile(r"\b(?:sleep|benchmark|pg_sleep)\s*\(|\bwaitfor\s+delay\b", re.I),
    re.compile(r"(?:%27|%22)(?:\s|%20|\+)*(?:or|and|union|--|%2d%2d|%23)|%2d%2d", re.I),
)
SUSPICIOUS_UA_RE = re.compile(
    r"\b(?:sqlmap|nikto|nmap|masscan|fuzzer|dirbuster|gobuster|wpscan|zgrab|python-requests|curl)\b",
    re.I,
)
IP_RE = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")


@dataclass(frozen=True)
class Finding:
    rule: str
    severity: str
    desc: str

    def to_dict(self) -> dict:
        return asdict(self)


def _any(patterns, text: str) -> bool:
    return any(p.search(text) for p in patterns)


# orden estable = orden de los findings en el incidente
RULES: Tuple[Tuple[str, Tuple[Pattern, ...]], ...] = (
    (FAILED_LOGIN, (FAILED_LOGIN_RE,)),
    (ADMIN_ACCESS, (ADMIN_RE,)),
    (SQL_INJECTION_PATTERN, SQLI_RES),
    (SUSPICIOUS_USER_AGENT, (SUSPICIOUS_UA_RE,)),
)


def evaluate(text: str) -> List[Finding]:
    """Corre todas las reglas sobre el texto (sin cortocircuito)."""
    text = "" if text is None else str(text)
    findings = []
    for rule, patterns in RULES:
        if _any(patterns, text):
            findings.append(Finding(rule, SEVERITY[rule], DESCRIPTION[rule]))
    return findings


def first_critical(findings: List[Finding]) -> Optional[Finding]:
    for f in findings:
        if f.severity == "critical":
            return f
    return None


def extract_source_address(text: str) -> Optional[str]:
    """Primer substring con forma de IPv4 (a.b.c.d), o None."""
    if not text:
        return None
    m = IP_RE.search(str(text))
    return m.group(0) if m else None
