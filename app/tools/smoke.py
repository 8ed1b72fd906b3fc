"""
Role-based smoke test and latency benchmark against a running server.

Logs in once per role and checks that every endpoint answers with the
status code that role should get. Run with:

    python -m app.tools.smoke [base_url]
    python -m app.tools.smoke benchmark [base_url]

Credentials come from SMOKE_* environment variables.
"""

import asyncio
import logging
import statistics
import sys
import time
from dataclasses import dataclass, field

import httpx
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.logging import configure_logging

logger = logging.getLogger(__name__)


class SmokeSettings(BaseSettings):
    """Target server and one account per role."""

    model_config = SettingsConfigDict(env_prefix="SMOKE_", env_file=".env", extra="ignore")

    BASE_URL: str = "http://localhost:8000"
    API_PREFIX: str = "/api/v1"
    PASSWORD: str = "admin123"
    ADMIN_EMAIL: str = "admin@example.com"
    TEACHER_EMAIL: str = "teacher@example.com"
    PARENT_EMAIL: str = "parent@example.com"
    STUDENT_EMAIL: str = "student@example.com"
    TIMEOUT_SECONDS: float = 10.0

    def credentials(self) -> dict[str, str]:
        return {
            "admin": self.ADMIN_EMAIL,
            "teacher": self.TEACHER_EMAIL,
            "parent": self.PARENT_EMAIL,
            "student": self.STUDENT_EMAIL,
        }


@dataclass
class Check:
    """An endpoint and the status code expected for each role."""

    name: str
    path: str
    expected: dict[str, int]
    method: str = "GET"


@dataclass
class CheckResult:
    check: str
    role: str
    expected: int
    status: int | None
    duration_ms: float
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.status == self.expected


@dataclass
class BenchmarkResult:
    path: str
    durations_ms: list[float] = field(default_factory=list)
    failures: int = 0

    def summary(self) -> dict[str, float]:
        if not self.durations_ms:
            return {"requests": 0, "failures": self.failures}
        ordered = sorted(self.durations_ms)
        return {
            "requests": len(ordered),
            "failures": self.failures,
            "mean_ms": round(statistics.fmean(ordered), 2),
            "p50_ms": round(statistics.median(ordered), 2),
            "p95_ms": round(ordered[max(0, int(len(ordered) * 0.95) - 1)], 2),
            "max_ms": round(ordered[-1], 2),
        }


def _everyone(status_code: int) -> dict[str, int]:
    return {role: status_code for role in ("admin", "teacher", "parent", "student")}


STAFF_ONLY = {"admin": 200, "teacher": 403, "parent": 403, "student": 403}

CHECKS = [
    Check("Current user", "/auth/me", _everyone(200)),
    Check("Students", "/students", {"admin": 200, "teacher": 200, "parent": 403, "student": 403}),
    Check("Student statistics", "/students/stats", {**STAFF_ONLY, "teacher": 200}),
    Check("Families", "/families", STAFF_ONLY),
    Check("Courses", "/courses", {"admin": 200, "teacher": 200, "parent": 403, "student": 403}),
    Check("Services", "/services", {"admin": 200, "teacher": 200, "parent": 403, "student": 403}),
    Check("Fee allocations", "/fees/allocations", STAFF_ONLY),
    Check("Payments", "/payments", STAFF_ONLY),
    Check("Financial report", "/reports/financial", STAFF_ONLY),
    Check("Modules", "/modules", STAFF_ONLY),
    Check("Parent portal", "/portal/parent", {"admin": 403, "teacher": 403, "parent": 200, "student": 403}),
    Check("Student portal", "/portal/student", {"admin": 403, "teacher": 403, "parent": 403, "student": 200}),
    Check("Teacher portal", "/portal/teacher", {"admin": 403, "teacher": 200, "parent": 403, "student": 403}),
]


async def login(client: httpx.AsyncClient, prefix: str, email: str, password: str) -> str | None:
    response = await client.post(f"{prefix}/auth/login", json={"email": email, "password": password})
    if response.status_code != 200:
        logger.warning("Login failed for %s: %s", email, response.status_code)
        return None
    return response.json()["access_token"]


async def run_checks(
    client: httpx.AsyncClient,
    tokens: dict[str, str | None],
    checks: list[Check],
    prefix: str = "/api/v1",
) -> list[CheckResult]:
    """Call every check as every role that has an expectation."""
    results = []
    for check in checks:
        for role, expected in check.expected.items():
            token = tokens.get(role)
            if token is None:
                results.append(CheckResult(check.name, role, expected, None, 0.0, "not logged in"))
                continue

            started = time.perf_counter()
            try:
                response = await client.request(
                    check.method,
                    f"{prefix}{check.path}",
                    headers={"Authorization": f"Bearer {token}"},
                )
                status_code, error = response.status_code, None
            except httpx.HTTPError as exc:
                status_code, error = None, str(exc)
            duration = (time.perf_counter() - started) * 1000

            result = CheckResult(check.name, role, expected, status_code, duration, error)
            results.append(result)
            log = logger.info if result.passed else logger.error
            log(
                "%s %-20s as %-8s expected %s got %s (%.0fms)",
                "PASS" if result.passed else "FAIL",
                check.name,
                role,
                expected,
                status_code,
                duration,
            )
    return results


async def benchmark(
    client: httpx.AsyncClient,
    path: str,
    token: str | None,
    requests: int = 50,
    concurrency: int = 10,
) -> BenchmarkResult:
    """Fire `requests` GETs at `path` with at most `concurrency` in flight."""
    result = BenchmarkResult(path=path)
    semaphore = asyncio.Semaphore(concurrency)
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    async def one() -> None:
        async with semaphore:
            started = time.perf_counter()
            try:
                response = await client.get(path, headers=headers)
            except httpx.HTTPError:
                result.failures += 1
                return
            if response.status_code >= 400:
                result.failures += 1
                return
            result.durations_ms.append((time.perf_counter() - started) * 1000)

    await asyncio.gather(*(one() for _ in range(requests)))
    return result


async def main_async(args: list[str]) -> int:
    settings = SmokeSettings()
    run_benchmark = bool(args) and args[0] == "benchmark"
    if run_benchmark:
        args = args[1:]
    base_url = args[0] if args else settings.BASE_URL
    prefix = settings.API_PREFIX

    async with httpx.AsyncClient(base_url=base_url, timeout=settings.TIMEOUT_SECONDS) as client:
        tokens = {
            role: await login(client, prefix, email, settings.PASSWORD)
            for role, email in settings.credentials().items()
        }

        if run_benchmark:
            for path in ("/health", f"{prefix}/students", f"{prefix}/courses"):
                result = await benchmark(client, path, tokens.get("admin"))
                logger.info("%s %s", path, result.summary())
            return 0

        results = await run_checks(client, tokens, CHECKS, prefix)

    failed = [r for r in results if not r.passed]
    logger.info("%d checks, %d failed", len(results), len(failed))
    return 1 if failed else 0


def main() -> None:
    configure_logging()
    sys.exit(asyncio.run(main_async(sys.argv[1:])))


if __name__ == "__main__":
    main()
