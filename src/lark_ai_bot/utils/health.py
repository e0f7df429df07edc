"""Health check utilities for monitoring service health.

This module provides health check capabilities for the Lark AI Bot:
- Check configuration sanity
- Check that credentials are present in the environment
- Check that Lark accepts the app credentials
- Generate health status reports
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from lark_ai_bot.utils.errors import AuthenticationError, CredentialError
from lark_ai_bot.utils.logging import LogEventNames
from lark_ai_bot.utils.security import mask_config_value

if TYPE_CHECKING:
    from lark_ai_bot.config.schema import BotConfig
    from lark_ai_bot.interfaces.chat import ChatProvider
    from lark_ai_bot.interfaces.secrets import CredentialProvider
    from lark_ai_bot.models.message import Credentials

log = structlog.get_logger()


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str
    latency_ms: float | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    """Overall health report."""

    healthy: bool
    status: HealthStatus
    timestamp: datetime
    checks: list[CheckResult]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "healthy": self.healthy,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "checks": [
                {
                    "name": c.name,
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                    "details": c.details,
                }
                for c in self.checks
            ],
        }


class HealthChecker:
    """Checks that the bot can run: config, secrets and Lark auth.

    Checks run sequentially because the Lark check needs the credentials.

    Example:
        checker = HealthChecker(config, lark, EnvCredentialProvider(config.credentials))
        report = await checker.run_all_checks()
        if not report.healthy:
            print(report.to_dict())
    """

    def __init__(
        self,
        config: BotConfig,
        chat: ChatProvider,
        credentials: CredentialProvider,
    ) -> None:
        self._config = config
        self._chat = chat
        self._credentials = credentials

    async def run_all_checks(self) -> HealthReport:
        """Run all health checks and return a report."""
        log.info(LogEventNames.HEALTH_CHECK_START)

        checks = [self._check_config()]

        credentials_check, creds = self._check_credentials()
        checks.append(credentials_check)

        if creds is not None:
            checks.append(await self._check_lark_auth(creds.app_id, creds.app_secret))
        else:
            checks.append(
                CheckResult(
                    name="lark_auth",
                    status=HealthStatus.UNHEALTHY,
                    message="Skipped: credentials unavailable",
                )
            )

        if all(c.status == HealthStatus.HEALTHY for c in checks):
            status = HealthStatus.HEALTHY
        elif any(c.status == HealthStatus.UNHEALTHY for c in checks):
            status = HealthStatus.UNHEALTHY
        else:
            status = HealthStatus.DEGRADED

        report = HealthReport(
            healthy=status != HealthStatus.UNHEALTHY,
            status=status,
            timestamp=datetime.now(UTC),
            checks=checks,
        )
        log.info(LogEventNames.HEALTH_CHECK_COMPLETE, status=status.value)
        return report

    def _check_config(self) -> CheckResult:
        tiers = self._config.gemini.tiers
        if len(tiers) == 1:
            return CheckResult(
                name="config",
                status=HealthStatus.DEGRADED,
                message="Only one model tier configured; no fallback available",
                details={"tiers": tiers},
            )
        return CheckResult(
            name="config",
            status=HealthStatus.HEALTHY,
            message=f"{len(tiers)} model tiers configured",
            details={"tiers": tiers},
        )

    def _check_credentials(self) -> tuple[CheckResult, Credentials | None]:
        try:
            creds = self._credentials.fetch()
        except CredentialError as e:
            return (
                CheckResult(name="credentials", status=HealthStatus.UNHEALTHY, message=str(e)),
                None,
            )
        return (
            CheckResult(
                name="credentials",
                status=HealthStatus.HEALTHY,
                message="All credentials present",
                details={"app_id": mask_config_value("credential", creds.app_id)},
            ),
            creds,
        )

    async def _check_lark_auth(self, app_id: str, app_secret: str) -> CheckResult:
        start = time.monotonic()
        try:
            await self._chat.get_tenant_token(app_id, app_secret)
        except AuthenticationError as e:
            return CheckResult(
                name="lark_auth",
                status=HealthStatus.UNHEALTHY,
                message=str(e),
                latency_ms=(time.monotonic() - start) * 1000,
            )
        return CheckResult(
            name="lark_auth",
            status=HealthStatus.HEALTHY,
            message="Tenant access token obtained",
            latency_ms=(time.monotonic() - start) * 1000,
        )
