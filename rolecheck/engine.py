"""Rule registry and the concurrent execution of parse and rule tasks."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
import threading
import time
import typing as typ

from .errors import InternalRuleFault, PhaseTimeoutError, UnknownRuleError
from .models import REPOSITORY_FILE, Finding, Span

if typ.TYPE_CHECKING:
    from .models import RoleRepository, RuleDefinition, RuleHandler

_logger = logging.getLogger(__name__)

T = typ.TypeVar("T")

Runner = typ.Callable[[typ.Callable[[], typ.Any]], typ.Awaitable[typ.Any]]

INTERNAL_PREFIX = "internal:"
TIMEOUT_PREFIX = "timeout:"
PARSE_RULE_ID = "parse.syntax"
UNREADABLE_RULE_ID = "collect.unreadable"
DEFAULT_TIMEOUT = 5.0

_NOQA = re.compile(r"#\s*noqa(?::\s*(?P<rules>[\w.:\-]+(?:\s*,\s*[\w.:\-]+)*))?")


async def run_in_daemon_thread(thunk: typ.Callable[[], T]) -> T:
    """Run ``thunk`` on a daemon thread and await its result.

    An abandoned thread (after a timeout) never keeps the interpreter alive.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def settle(result: T | None, error: Exception | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(typ.cast("T", result))

    def target() -> None:
        try:
            result = thunk()
        except Exception as error:  # noqa: BLE001 - forwarded to the awaiting task
            outcome: tuple[T | None, Exception | None] = (None, error)
        else:
            outcome = (result, None)
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(settle, *outcome)

    threading.Thread(target=target, name="rolecheck-worker", daemon=True).start()
    return await future


class TaskPool:
    """Bounded concurrency with a per-task timeout."""

    def __init__(
        self,
        *,
        timeout: float | None = DEFAULT_TIMEOUT,
        jobs: int | None = None,
        runner: Runner | None = None,
    ) -> None:
        """Store limits; ``runner`` replaces the daemon-thread runner in tests."""
        self.timeout = timeout
        self.jobs = max(1, jobs or os.cpu_count() or 1)
        self._runner = runner or run_in_daemon_thread
        self._semaphore: asyncio.Semaphore | None = None

    async def run(
        self,
        phase: str,
        subject: str,
        thunk: typ.Callable[[], T],
    ) -> T:
        """Execute ``thunk`` within the pool, raising PhaseTimeoutError on expiry."""
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.jobs)
        async with self._semaphore:
            started = time.perf_counter()
            try:
                result = await asyncio.wait_for(
                    self._runner(thunk), timeout=self.timeout
                )
            except TimeoutError as error:
                raise PhaseTimeoutError(
                    phase, subject, self.timeout or 0.0
                ) from error
            _logger.debug(
                "%s %s finished in %.1f ms",
                phase,
                subject,
                (time.perf_counter() - started) * 1000,
            )
            return typ.cast("T", result)


class RuleRegistry:
    """Helper to register and execute rolecheck rules."""

    def __init__(self) -> None:
        """Initialise an empty registry."""
        self._entries: list[tuple[RuleDefinition, RuleHandler]] = []
        self._always: set[str] = set()

    def register(
        self,
        definition: RuleDefinition,
        handler: RuleHandler,
        *,
        always: bool = False,
    ) -> None:
        """Register a new rule handler.

        Rules registered with ``always`` survive a selection by name and are
        dropped only when excluded explicitly.
        """
        if definition.rule_id in self.rule_ids:
            message = f"rule {definition.rule_id!r} is already registered"
            raise ValueError(message)
        self._entries.append((definition, handler))
        if always:
            self._always.add(definition.rule_id)

    @property
    def rules(self) -> list[RuleDefinition]:
        """Expose the rule metadata for listings and SARIF output."""
        return [entry[0] for entry in self._entries]

    @property
    def rule_ids(self) -> list[str]:
        """Return the registered rule identifiers in registration order."""
        return [entry[0].rule_id for entry in self._entries]

    def select(
        self,
        names: typ.Iterable[str] | None = None,
        *,
        exclude: typ.Iterable[str] = (),
    ) -> RuleRegistry:
        """Return a registry restricted to ``names`` and without ``exclude``.

        Raises:
            UnknownRuleError: when a name does not match any registered rule.

        """
        wanted = list(dict.fromkeys(names)) if names is not None else None
        skipped = list(dict.fromkeys(exclude))
        known = set(self.rule_ids)
        unknown = [name for name in [*(wanted or []), *skipped] if name not in known]
        if unknown:
            raise UnknownRuleError(unknown)
        selected = RuleRegistry()
        for definition, handler in self._entries:
            rule_id = definition.rule_id
            if rule_id in skipped:
                continue
            if (
                wanted is not None
                and rule_id not in wanted
                and rule_id not in self._always
            ):
                continue
            selected.register(definition, handler, always=rule_id in self._always)
        return selected

    async def evaluate(
        self,
        repository: RoleRepository,
        *,
        pool: TaskPool | None = None,
    ) -> list[Finding]:
        """Run every registered handler and aggregate the findings."""
        task_pool = pool or TaskPool()
        results = await asyncio.gather(
            *(
                self._evaluate_one(definition, handler, repository, task_pool)
                for definition, handler in self._entries
            )
        )
        findings: list[Finding] = []
        for result in results:
            findings.extend(result)
        return findings

    async def _evaluate_one(
        self,
        definition: RuleDefinition,
        handler: RuleHandler,
        repository: RoleRepository,
        pool: TaskPool,
    ) -> list[Finding]:
        rule_id = definition.rule_id
        try:
            result = await pool.run(
                "rule", rule_id, lambda: _materialise(handler(repository))
            )
        except PhaseTimeoutError as error:
            _logger.debug("rule %s timed out", rule_id)
            return [timeout_finding(error)]
        except Exception as error:  # noqa: BLE001 - faults become findings
            fault = InternalRuleFault(rule_id, error)
            _logger.debug("rule %s raised", rule_id, exc_info=error)
            return [
                Finding(
                    rule_id=f"{INTERNAL_PREFIX}{rule_id}",
                    severity="error",
                    span=Span(REPOSITORY_FILE),
                    message=str(fault),
                    properties={"exception": type(error).__name__},
                )
            ]
        return suppress_findings(result, repository)


def _materialise(result: typ.Iterable[Finding] | None) -> list[Finding]:
    """Drain a handler's result so lazy rules fail inside the task pool."""
    findings = list(result or [])
    for item in findings:
        if not isinstance(item, Finding):
            message = f"rule returned {type(item).__name__}, expected Finding"
            raise TypeError(message)
    return findings


def timeout_finding(error: PhaseTimeoutError) -> Finding:
    """Convert a phase timeout into an error finding."""
    file = error.subject if error.phase == "parse" else REPOSITORY_FILE
    return Finding(
        rule_id=f"{TIMEOUT_PREFIX}{error.phase}",
        severity="error",
        span=Span(file),
        message=str(error),
        properties={"subject": error.subject},
    )


def suppress_findings(
    findings: list[Finding],
    repository: RoleRepository,
) -> list[Finding]:
    """Drop findings whose source line carries a matching ``# noqa`` comment."""
    kept: list[Finding] = []
    for finding in findings:
        if _is_suppressed(finding, repository):
            _logger.debug(
                "suppressed %s at %s:%d", finding.rule_id, finding.file, finding.line
            )
            continue
        kept.append(finding)
    return kept


def _is_suppressed(finding: Finding, repository: RoleRepository) -> bool:
    if finding.rule_id.startswith(
        (INTERNAL_PREFIX, TIMEOUT_PREFIX, PARSE_RULE_ID, UNREADABLE_RULE_ID)
    ):
        return False
    source = repository.get(finding.file)
    if source is None:
        return False
    match = _NOQA.search(source.line_text(finding.line))
    if match is None:
        return False
    rules = match.group("rules")
    if not rules:
        return True
    return finding.rule_id in {name.strip() for name in rules.split(",")}
