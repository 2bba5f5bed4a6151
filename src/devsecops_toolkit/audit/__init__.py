"""In-process repository checks: secret patterns and hygiene audits."""

from .repository_audit import RepositoryAuditor
from .secret_scanner import SECRET_PATTERNS, SecretPattern, SecretScanner

__all__ = ["SECRET_PATTERNS", "RepositoryAuditor", "SecretPattern", "SecretScanner"]
