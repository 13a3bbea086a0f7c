"""
Generation Orchestrator
Bounded multi-attempt synthesis loop with validation, retry feedback,
deterministic fallback and persistence.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from returns.pipeline import is_successful

from ..core.config import Settings
from ..core.hash import Algorithm, hash_spec
from ..core.id import new_generation_id
from ..core.json import safe_json_dumps
from ..core.logging_config import get_logger
from ..core.stream import JsonObjectExtractor, StreamCounter
from ..core.validate import GenerateRequest
from ..integrations.interfaces import (
    AttemptContext,
    AttemptIssue,
    ComponentContext,
    ContextProvider,
    DesignInput,
    ExtractComponentsInput,
    ExtractComponentsResult,
    GenerationModel,
)
from ..monitoring import MetricsCollector, metrics_collector
from ..persistence.interfaces import (
    PersistenceAdapter,
    PersistGenerationInput,
    RecordFailureInput,
    WarningEntry,
)
from ..spec.diff import diff_specs
from ..spec.models import Patch, empty_spec
from ..spec.normalize import normalize_tree
from ..spec.validate import SpecValidator
from .candidates import parse_candidate
from .constraints import ConstraintBuilder, ConstraintSet, check_constraints
from .events import (
    DoneEvent,
    ErrorEvent,
    PatchEvent,
    StatusEvent,
    StreamEvent,
    UsageEvent,
    WarningEvent,
)
from .fallback import build_fallback_snapshot

logger = get_logger(__name__)


class Stage:
    """Status event stages."""

    EXTRACT_COMPONENTS = "extract_components"
    FETCH_CONTEXT = "fetch_context"
    DESIGN = "design"
    FALLBACK = "fallback"
    PERSIST = "persist"


class ErrorCode:
    """Terminal error codes."""

    THREAD_NOT_FOUND = "THREAD_NOT_FOUND"
    BASE_VERSION_CONFLICT = "BASE_VERSION_CONFLICT"
    GENERATION_EXCEPTION = "GENERATION_EXCEPTION"
    FALLBACK_INVALID = "FALLBACK_INVALID"
    NO_VALID_CANDIDATE = "NO_VALID_CANDIDATE"


class WarningCode:
    """Orchestrator warning codes (validator and constraint codes pass through)."""

    DESIGN_STREAM_FAILED = "DESIGN_STREAM_FAILED"
    NO_VALID_OUTPUT = "NO_VALID_OUTPUT"
    NO_STRUCTURAL_CHANGE = "NO_STRUCTURAL_CHANGE"
    FALLBACK_APPLIED = "FALLBACK_APPLIED"


def estimate_tokens(text: str) -> int:
    """Rough token count: a quarter of the stripped length, at least 1."""
    trimmed = text.strip()
    if not trimmed:
        return 0
    return max(1, math.ceil(len(trimmed) / 4))


@dataclass
class _Run:
    """Mutable state of one generation call."""

    request: GenerateRequest
    generation_id: str = field(default_factory=new_generation_id)
    started_at: float = field(default_factory=time.monotonic)
    warnings: list[WarningEntry] = field(default_factory=list)
    patch_count: int = 0
    output: StreamCounter = field(default_factory=StreamCounter)
    terminal_sent: bool = False

    def __post_init__(self) -> None:
        self.log = logger.bind(generation_id=self.generation_id, thread_id=self.request.thread_id)

    @property
    def duration_ms(self) -> int:
        return max(0, int((time.monotonic() - self.started_at) * 1000))

    def status(self, stage: str) -> StatusEvent:
        return StatusEvent(generation_id=self.generation_id, stage=stage)

    def warning(self, code: str, message: str) -> WarningEvent:
        self.warnings.append(WarningEntry(code=code, message=message))
        return WarningEvent(generation_id=self.generation_id, code=code, message=message)

    def patch(self, patch: Patch) -> PatchEvent:
        self.patch_count += 1
        return PatchEvent(generation_id=self.generation_id, patch=patch.to_dict())

    def error(self, code: str, message: str) -> ErrorEvent:
        return ErrorEvent(generation_id=self.generation_id, code=code, message=message)


@dataclass
class _Accepted:
    spec: dict[str, Any]
    patches: list[Patch]


class GenerationOrchestrator:
    """
    Turns a prompt into an ordered stream of events.

    Every call to run() yields exactly one terminal event (done or error),
    always last. Unexpected exceptions never escape; they become a
    GENERATION_EXCEPTION error event.
    """

    def __init__(
        self,
        model: GenerationModel,
        context_provider: ContextProvider,
        persistence: PersistenceAdapter,
        validator: SpecValidator,
        constraint_builder: ConstraintBuilder,
        settings: Settings,
        metrics: MetricsCollector = metrics_collector,
    ) -> None:
        self.model = model
        self.context_provider = context_provider
        self.persistence = persistence
        self.validator = validator
        self.constraint_builder = constraint_builder
        self.settings = settings
        self.metrics = metrics

    async def run(self, request: GenerateRequest) -> AsyncIterator[StreamEvent]:
        """
        Run one generation.

        Args:
            request: Validated generation request

        Yields:
            status, patch, warning and usage events, then done or error
        """
        run = _Run(request=request)
        run.log.info("generation_start", base_version_id=request.base_version_id)

        events = self._generate(run)
        try:
            async for event in events:
                self._observe(run, event)
                yield event
                if event.is_terminal:
                    return
        except Exception as e:
            if run.terminal_sent:
                run.log.error("post_terminal_exception", error=str(e), exc_info=True)
                return
            run.log.error("generation_failed", error=str(e), exc_info=True)
            self.metrics.record_error(type(e).__name__, "orchestrator")
            await self._record_failure(run, ErrorCode.GENERATION_EXCEPTION)
            event = run.error(ErrorCode.GENERATION_EXCEPTION, str(e) or type(e).__name__)
            self._observe(run, event)
            yield event
        finally:
            await events.aclose()

    def _observe(self, run: _Run, event: StreamEvent) -> None:
        if isinstance(event, WarningEvent):
            self.metrics.record_warning(event.code)
        elif isinstance(event, PatchEvent):
            self.metrics.record_patch(event.patch["op"])
        elif event.is_terminal:
            run.terminal_sent = True
            outcome = event.code if isinstance(event, ErrorEvent) else "done"
            self.metrics.record_generation(outcome, run.duration_ms / 1000)
            run.log.info(
                "generation_end",
                outcome=outcome,
                warnings=len(run.warnings),
                patches=run.patch_count,
                duration_ms=run.duration_ms,
            )

    async def _generate(self, run: _Run) -> AsyncIterator[StreamEvent]:
        request = run.request

        bundle = await self.persistence.get_bundle(request.thread_id)
        if bundle is None:
            await self._record_failure(run, ErrorCode.THREAD_NOT_FOUND)
            yield run.error(ErrorCode.THREAD_NOT_FOUND, f"Thread '{request.thread_id}' not found.")
            return

        base = await self.persistence.get_version(request.thread_id, request.base_version_id)
        if request.base_version_id is not None and base is None:
            await self._record_failure(run, ErrorCode.BASE_VERSION_CONFLICT)
            yield run.error(
                ErrorCode.BASE_VERSION_CONFLICT,
                f"Base version '{request.base_version_id}' was not found for thread '{request.thread_id}'.",
            )
            return

        canonical = base.spec_snapshot if base is not None else empty_spec()
        empty_base = not canonical.get("root")
        previous_spec = None if empty_base else canonical

        yield run.status(Stage.EXTRACT_COMPONENTS)
        extraction = await self.model.extract_components(
            ExtractComponentsInput(prompt=request.prompt, previous_spec=previous_spec)
        )

        yield run.status(Stage.FETCH_CONTEXT)
        context = await self.context_provider.fetch_context(extraction.components)
        constraints = self.constraint_builder.build(request.prompt, extraction, context)
        run.log.info(
            "constraints_built",
            required=sorted(constraints.required_types),
            min_elements=constraints.min_elements,
            tokens=len(constraints.required_text_tokens),
        )

        accepted: _Accepted | None = None
        feedback: list[AttemptIssue] = []

        for attempt in range(1, self.settings.max_attempts + 1):
            yield run.status(Stage.DESIGN)
            design = DesignInput(
                prompt=request.prompt,
                previous_spec=previous_spec,
                component_context=context,
                attempt=AttemptContext(attempt=attempt, issues=feedback),
            )
            issues: list[AttemptIssue] = []
            stream_failed = False

            stream = None
            try:
                stream = self.model.stream_design(design)
                extractor = JsonObjectExtractor()
                while accepted is None:
                    try:
                        chunk = await anext(stream)
                    except StopAsyncIteration:
                        break
                    except Exception as e:
                        stream_failed = True
                        run.log.warning("design_stream_failed", attempt=attempt, error=str(e))
                        yield run.warning(
                            WarningCode.DESIGN_STREAM_FAILED,
                            f"Design stream failed on attempt {attempt}: {e}",
                        )
                        break

                    run.output.track(chunk)
                    for text in extractor.feed(chunk):
                        parsed = parse_candidate(text)
                        if not is_successful(parsed):
                            run.log.debug("candidate_skipped", reason=parsed.failure().message)
                            continue

                        candidate = normalize_tree(
                            parsed.unwrap(), text_element_type=self.settings.text_element_type
                        )
                        rejected, patches = self._evaluate(candidate, canonical, constraints, empty_base)
                        if rejected:
                            for issue in rejected:
                                issues.append(issue)
                                yield run.warning(issue.code, issue.message)
                            continue

                        accepted = _Accepted(spec=candidate, patches=patches)
                        break
            except Exception as e:
                # stream_design itself raised before producing an iterator
                if stream is not None:
                    raise
                stream_failed = True
                run.log.warning("design_stream_failed", attempt=attempt, error=str(e))
                yield run.warning(
                    WarningCode.DESIGN_STREAM_FAILED,
                    f"Design stream failed on attempt {attempt}: {e}",
                )
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

            if accepted is not None:
                self.metrics.record_attempt("accepted")
                run.log.info("attempt_accepted", attempt=attempt, patches=len(accepted.patches))
                break

            self.metrics.record_attempt("stream_failed" if stream_failed else "rejected")
            if stream_failed:
                break

            if not issues:
                issue = AttemptIssue(
                    code=WarningCode.NO_VALID_OUTPUT,
                    message=f"Attempt {attempt} produced no complete candidate object.",
                )
                issues.append(issue)
                yield run.warning(issue.code, issue.message)

            run.log.info("attempt_rejected", attempt=attempt, issues=len(issues))
            feedback = issues

        if accepted is None:
            if not self.settings.enable_fallback:
                await self._record_failure(run, ErrorCode.NO_VALID_CANDIDATE)
                yield run.error(ErrorCode.NO_VALID_CANDIDATE, "No valid candidate was produced.")
                return

            yield run.status(Stage.FALLBACK)
            fallback = normalize_tree(
                build_fallback_snapshot(request.prompt),
                text_element_type=self.settings.text_element_type,
            )
            validation = self.validator.validate(fallback)
            if not validation.valid:
                run.log.error("fallback_invalid", issues=[issue.code for issue in validation.issues])
                await self._record_failure(run, ErrorCode.FALLBACK_INVALID)
                yield run.error(ErrorCode.FALLBACK_INVALID, "Fallback spec failed validation.")
                return

            yield run.warning(WarningCode.FALLBACK_APPLIED, "Applied deterministic fallback UI.")
            accepted = _Accepted(spec=fallback, patches=diff_specs(canonical, fallback))

        for patch in accepted.patches:
            yield run.patch(patch)
        canonical = accepted.spec

        yield run.status(Stage.PERSIST)
        base_version_id = base.version_id if base is not None else None
        async for event in self._persist(run, canonical, base_version_id, extraction, context):
            yield event

    def _evaluate(
        self,
        candidate: dict[str, Any],
        canonical: dict[str, Any],
        constraints: ConstraintSet,
        empty_base: bool,
    ) -> tuple[list[AttemptIssue], list[Patch]]:
        """Validate and constraint-check a candidate; patches only when accepted."""
        validation = self.validator.validate(candidate)
        if not validation.valid:
            return [AttemptIssue(code=i.code, message=i.message) for i in validation.issues], []

        violations = check_constraints(candidate, constraints)
        if violations:
            return [AttemptIssue(code=v.code, message=v.message) for v in violations], []

        patches = diff_specs(canonical, candidate)
        if empty_base and not patches:
            return [
                AttemptIssue(
                    code=WarningCode.NO_STRUCTURAL_CHANGE,
                    message="Candidate does not change the empty base spec.",
                )
            ], []
        return [], patches

    async def _persist(
        self,
        run: _Run,
        spec: dict[str, Any],
        base_version_id: str | None,
        extraction: ExtractComponentsResult,
        context: ComponentContext,
    ) -> AsyncIterator[StreamEvent]:
        request = run.request
        spec_hash = hash_spec(spec, Algorithm(self.settings.spec_hash_algorithm))
        output_text = run.output.text

        reasoning = " ".join([
            f'Generated UI for prompt "{request.prompt[:120]}".',
            f"Intent confidence: {extraction.confidence:.2f}.",
            f"Context {context.context_version} supplied {len(context.component_rules)} rule(s).",
            f"Applied {run.patch_count} patch(es); warnings: {len(run.warnings)}.",
        ])

        persisted = await self.persistence.persist_generation(
            PersistGenerationInput(
                thread_id=request.thread_id,
                generation_id=run.generation_id,
                prompt=request.prompt,
                assistant_response_text=output_text.strip() or safe_json_dumps(spec),
                assistant_reasoning_text=reasoning,
                base_version_id=base_version_id,
                spec_snapshot=spec,
                spec_hash=spec_hash,
                context_used=list(extraction.components),
                warnings=list(run.warnings),
                patch_count=run.patch_count,
                duration_ms=run.duration_ms,
            )
        )

        prompt_tokens = estimate_tokens(request.prompt)
        completion_tokens = estimate_tokens(output_text)
        self.metrics.record_tokens(prompt_tokens, completion_tokens)

        yield UsageEvent(
            generation_id=run.generation_id,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )
        yield DoneEvent(
            generation_id=run.generation_id,
            version_id=persisted.version.version_id,
            spec_hash=spec_hash,
        )

    async def _record_failure(self, run: _Run, code: str) -> None:
        """Best-effort failure log; never raises."""
        try:
            await self.persistence.record_failure(
                RecordFailureInput(
                    thread_id=run.request.thread_id,
                    generation_id=run.generation_id,
                    warning_count=len(run.warnings),
                    patch_count=run.patch_count,
                    duration_ms=run.duration_ms,
                    error_code=code,
                )
            )
        except Exception as e:
            run.log.warning("failure_record_failed", code=code, error=str(e))
