"""
Startup Validation Module

Checks run once when the app is created:
1. Configuration validation - required settings present, session secret strong enough
2. Dependency checks - database reachable, Redis reachable when configured

In production a failing report is logged as an error; in development it only warns.
"""

import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime, timezone

import redis
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


@dataclass
class ValidationResult:
    """Result of a validation check."""
    name: str
    passed: bool
    message: str
    severity: str = "error"  # error, warning, info
    remediation: Optional[str] = None


@dataclass
class StartupReport:
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    environment: str = "development"
    validations: List[ValidationResult] = field(default_factory=list)
    ready: bool = False

    def add_validation(self, result: ValidationResult):
        self.validations.append(result)

    def has_critical_failures(self) -> bool:
        return any(v.severity == "error" and not v.passed for v in self.validations)

    def failures(self) -> List[ValidationResult]:
        return [v for v in self.validations if not v.passed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "environment": self.environment,
            "ready": self.ready,
            "validations": [
                {
                    "name": v.name,
                    "passed": v.passed,
                    "message": v.message,
                    "severity": v.severity,
                    "remediation": v.remediation
                }
                for v in self.validations
            ],
            "summary": {
                "total_validations": len(self.validations),
                "passed": sum(1 for v in self.validations if v.passed),
                "failed": sum(1 for v in self.validations if not v.passed),
            }
        }


class StartupValidator:
    """
    Validates an application's configuration and backing services.

    Args:
        config: the Flask app config (or any mapping with the same keys)
        engine: SQLAlchemy engine to probe; skipped when None
    """

    REQUIRED_SETTINGS = [
        ("SQLALCHEMY_DATABASE_URI", "DATABASE_URL", "Database connection string"),
        ("SECRET_KEY", "SESSION_SECRET", "Session encryption key - CRITICAL for security"),
    ]

    def __init__(self, config, engine=None):
        self.config = config
        self.engine = engine
        self.report = StartupReport(environment=config.get("ENV_NAME", "development"))

    def is_production(self) -> bool:
        return self.report.environment == "production"

    def validate_required_settings(self) -> None:
        for key, env_name, description in self.REQUIRED_SETTINGS:
            if self.config.get(key):
                self.report.add_validation(ValidationResult(
                    name=f"env:{env_name}",
                    passed=True,
                    message=f"{env_name} is configured",
                ))
            else:
                self.report.add_validation(ValidationResult(
                    name=f"env:{env_name}",
                    passed=False,
                    message=f"Missing required: {env_name}",
                    remediation=f"Set {env_name} environment variable. {description}"
                ))

    def validate_secret_key_strength(self) -> None:
        secret = self.config.get("SECRET_KEY") or ""
        if not secret:
            return  # reported by validate_required_settings

        if len(secret) < MIN_SECRET_LENGTH:
            self.report.add_validation(ValidationResult(
                name="security:session_secret",
                passed=not self.is_production(),
                message=f"SESSION_SECRET too short ({len(secret)} chars, need {MIN_SECRET_LENGTH}+)",
                severity="error" if self.is_production() else "warning",
                remediation=f"Use at least {MIN_SECRET_LENGTH} characters for SESSION_SECRET"
            ))
        else:
            self.report.add_validation(ValidationResult(
                name="security:session_secret",
                passed=True,
                message="SESSION_SECRET meets length requirements",
            ))

    def validate_database_connection(self) -> None:
        if self.engine is None:
            return
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            self.report.add_validation(ValidationResult(
                name="db:connection",
                passed=True,
                message=f"Database connection successful ({self.engine.dialect.name})",
            ))
        except SQLAlchemyError as e:
            self.report.add_validation(ValidationResult(
                name="db:connection",
                passed=False,
                message=f"Database connection failed: {str(e)[:100]}",
                remediation="Check DATABASE_URL and ensure the database is accessible"
            ))

    def validate_redis_connection(self) -> None:
        redis_url = self.config.get("REDIS_URL")
        if not redis_url:
            self.report.add_validation(ValidationResult(
                name="redis:connection",
                passed=True,
                message="Redis not configured (notifications disabled)",
                severity="info"
            ))
            return

        try:
            redis.from_url(redis_url, socket_connect_timeout=5).ping()
            self.report.add_validation(ValidationResult(
                name="redis:connection",
                passed=True,
                message="Redis connection successful",
                severity="warning"
            ))
        except (redis.RedisError, ValueError) as e:
            self.report.add_validation(ValidationResult(
                name="redis:connection",
                passed=False,
                message=f"Redis connection failed: {str(e)[:100]}",
                severity="warning",
                remediation="Check REDIS_URL or remove it to run without notifications"
            ))

    def run_all_validations(self) -> StartupReport:
        """Run all validation checks and return the report."""
        self.validate_required_settings()
        self.validate_secret_key_strength()
        self.validate_database_connection()
        self.validate_redis_connection()

        self.report.ready = not self.report.has_critical_failures()

        summary = self.report.to_dict()["summary"]
        logger.info(
            f"Startup validation ({self.report.environment}): "
            f"{summary['passed']}/{summary['total_validations']} passed"
        )
        for v in self.report.failures():
            log = logger.error if (v.severity == "error" and self.is_production()) else logger.warning
            log(f"  - {v.name}: {v.message}")
            if v.remediation:
                log(f"    Fix: {v.remediation}")

        return self.report
