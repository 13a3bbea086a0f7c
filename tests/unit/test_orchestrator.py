"""Tests for the generation orchestrator."""

import json

import pytest

from genui.core.hash import hash_spec
from genui.core.validate import GenerateRequest
from genui.integrations import ExtractComponentsResult, StubGenerationModel
from genui.integrations.stub import build_stub_tree
from genui.orchestrator import ConstraintSet, estimate_tokens
from genui.persistence import InMemoryPersistence
from genui.spec import ValidationResult, apply_patches, empty_spec


PRICING_PROMPT = "Create a pricing card with CTA"

UNKNOWN_NODE = json.dumps({"id": "r", "type": "Carousel", "children": []})


def _tree(text="hi", root="r"):
    return json.dumps({"tree": {"id": root, "type": "Card", "children": [{"id": "t", "type": "Text", "props": {"text": text}}]}})


async def _collect(orchestrator, **request):
    events = [event async for event in orchestrator.run(GenerateRequest(**request))]
    terminal = [event for event in events if event.is_terminal]
    assert len(terminal) == 1
    assert events[-1] is terminal[0]
    return events


def _types(events, kind):
    return [event for event in events if event.type == kind]


class TestHappyPath:
    """Accepted generations."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pricing_card(self, persistence, make_orchestrator):
        """Test the stub model produces a persisted card."""
        thread = await persistence.create_thread("Pricing")
        events = await _collect(
            make_orchestrator(StubGenerationModel()), thread_id=thread.thread_id, prompt=PRICING_PROMPT
        )

        assert events[0].type == "status"
        assert [e.stage for e in _types(events, "status")] == [
            "extract_components",
            "fetch_context",
            "design",
            "persist",
        ]
        assert _types(events, "warning") == []
        patches = [e.patch for e in _types(events, "patch")]
        assert patches

        done = events[-1]
        assert done.type == "done"
        version = await persistence.get_version(thread.thread_id, None)
        assert version.version_id == done.version_id
        assert version.spec_hash == done.spec_hash == hash_spec(version.spec_snapshot)
        assert apply_patches(empty_spec(), patches) == version.spec_snapshot

        types = {element["type"] for element in version.spec_snapshot["elements"].values()}
        assert {"Card", "CardContent"} <= types
        assert types & {"CardHeader", "CardTitle"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_usage_and_messages(self, persistence, make_orchestrator):
        """Test usage estimates and persisted messages."""
        thread = await persistence.create_thread()
        events = await _collect(
            make_orchestrator(StubGenerationModel()), thread_id=thread.thread_id, prompt=PRICING_PROMPT
        )

        usage = _types(events, "usage")[0]
        assert usage.prompt_tokens == estimate_tokens(PRICING_PROMPT) == 8
        assert usage.total_tokens == usage.prompt_tokens + usage.completion_tokens
        assert events[-2] is usage

        bundle = await persistence.get_bundle(thread.thread_id)
        user, assistant = bundle.messages
        assert user.role == "user" and user.content == PRICING_PROMPT
        assert assistant.reasoning.startswith(f'Generated UI for prompt "{PRICING_PROMPT}".')
        assert "Intent confidence: 0.88." in assistant.reasoning
        assert assistant.meta["patchCount"] == len(_types(events, "patch"))
        assert assistant.meta["contextUsed"] == bundle.versions[0].context_used

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_iteration_on_previous_version(self, persistence, make_orchestrator):
        """Test a second generation builds on the requested base."""
        thread = await persistence.create_thread()
        orchestrator = make_orchestrator(StubGenerationModel())
        first = await _collect(orchestrator, thread_id=thread.thread_id, prompt=PRICING_PROMPT)
        second = await _collect(
            orchestrator,
            thread_id=thread.thread_id,
            prompt="Make it pop",
            base_version_id=first[-1].version_id,
        )

        assert second[-1].type == "done"
        version = await persistence.get_version(thread.thread_id, second[-1].version_id)
        assert version.base_version_id == first[-1].version_id
        bundle = await persistence.get_bundle(thread.thread_id)
        assert bundle.thread.active_version_id == second[-1].version_id

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_candidates_are_skipped(self, persistence, make_orchestrator, scripted_model):
        """Test objects that are not snapshots are ignored."""
        thread = await persistence.create_thread()
        model = scripted_model([['thinking {"foo": 1} ', _tree()]])
        events = await _collect(make_orchestrator(model), thread_id=thread.thread_id, prompt="hello")

        assert events[-1].type == "done"
        assert _types(events, "warning") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_first_accepted_candidate_wins(self, persistence, make_orchestrator, scripted_model):
        """Test later objects and chunks are not processed after acceptance."""
        thread = await persistence.create_thread()
        model = scripted_model([[_tree("first") + "\n" + _tree("second"), _tree("third")]])
        events = await _collect(make_orchestrator(model), thread_id=thread.thread_id, prompt="hello")

        assert events[-1].type == "done"
        assert model.closed == 1
        version = await persistence.get_version(thread.thread_id, None)
        assert version.spec_snapshot["elements"]["t"]["props"]["text"] == "first"


class TestRetries:
    """Attempt loop, feedback and fallback."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_three_attempts_then_fallback(self, persistence, make_orchestrator, scripted_model):
        """Test the loop is bounded and falls back."""
        thread = await persistence.create_thread()
        model = scripted_model([[UNKNOWN_NODE]])
        events = await _collect(make_orchestrator(model), thread_id=thread.thread_id, prompt="Create a widget")

        assert [d.attempt.attempt for d in model.design_inputs] == [1, 2, 3]
        assert model.design_inputs[0].attempt.issues == []
        assert [i.code for i in model.design_inputs[1].attempt.issues] == ["UNKNOWN_COMPONENT"]
        assert model.closed == 3

        codes = [e.code for e in _types(events, "warning")]
        assert codes == ["UNKNOWN_COMPONENT"] * 3 + ["FALLBACK_APPLIED"]
        assert [e.stage for e in _types(events, "status")].count("design") == 3
        assert "fallback" in [e.stage for e in _types(events, "status")]
        assert _types(events, "patch")
        assert events[-1].type == "done"

        version = await persistence.get_version(thread.thread_id, None)
        assert version.spec_snapshot["elements"]["root"]["type"] == "Card"
        assert version.spec_snapshot["state"]["details"][0]["text"] == "Stable fallback output"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_max_attempts_setting(self, persistence, make_orchestrator, scripted_model):
        """Test the attempt bound is configurable."""
        thread = await persistence.create_thread()
        model = scripted_model([[UNKNOWN_NODE]])
        await _collect(make_orchestrator(model, max_attempts=2), thread_id=thread.thread_id, prompt="x")
        assert len(model.design_inputs) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retry_with_constraint_feedback(self, persistence, make_orchestrator, scripted_model):
        """Test constraint violations steer the next attempt."""
        thread = await persistence.create_thread()
        model = scripted_model(
            [[_tree()], [json.dumps({"tree": build_stub_tree(PRICING_PROMPT, "Get started")})]],
            extraction=ExtractComponentsResult(components=["Card"], intent_type="new", confidence=0.7),
        )
        events = await _collect(make_orchestrator(model), thread_id=thread.thread_id, prompt=PRICING_PROMPT)

        assert len(model.design_inputs) == 2
        feedback = {issue.code for issue in model.design_inputs[1].attempt.issues}
        assert "CONSTRAINT_MIN_ELEMENTS" in feedback
        assert "CONSTRAINT_REQUIRED_COMPONENT" in feedback
        assert "FALLBACK_APPLIED" not in [e.code for e in _types(events, "warning")]
        assert events[-1].type == "done"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_constraint_violations_exhaust_attempts(self, persistence, make_orchestrator, scripted_model):
        """Test a valid but under-specified tree is retried three times then replaced by the fallback."""
        thread = await persistence.create_thread()
        model = scripted_model([[_tree()]])
        events = await _collect(make_orchestrator(model), thread_id=thread.thread_id, prompt=PRICING_PROMPT)

        assert [d.attempt.attempt for d in model.design_inputs] == [1, 2, 3]
        for design in model.design_inputs[1:]:
            assert design.attempt.issues
            assert all(issue.code.startswith("CONSTRAINT_") for issue in design.attempt.issues)

        per_attempt = []
        for event in events:
            if event.type == "status" and event.stage in ("design", "fallback"):
                per_attempt.append([])
            elif event.type == "warning":
                per_attempt[-1].append(event.code)

        assert len(per_attempt) == 4
        for codes in per_attempt[:3]:
            assert codes
            assert all(code.startswith("CONSTRAINT_") for code in codes)
        assert per_attempt[3] == ["FALLBACK_APPLIED"]
        assert _types(events, "patch")
        assert events[-1].type == "done"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_valid_output(self, persistence, make_orchestrator, scripted_model):
        """Test attempts without any object record NO_VALID_OUTPUT."""
        thread = await persistence.create_thread()
        model = scripted_model([["no json ", "here {unfinished"]])
        events = await _collect(make_orchestrator(model), thread_id=thread.thread_id, prompt="x")

        codes = [e.code for e in _types(events, "warning")]
        assert codes == ["NO_VALID_OUTPUT"] * 3 + ["FALLBACK_APPLIED"]
        assert [i.code for i in model.design_inputs[2].attempt.issues] == ["NO_VALID_OUTPUT"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stream_failure_aborts_attempts(self, persistence, make_orchestrator, scripted_model):
        """Test a throwing stream is not retried."""
        thread = await persistence.create_thread()
        model = scripted_model([["partial {", RuntimeError("connection reset")]])
        events = await _collect(make_orchestrator(model), thread_id=thread.thread_id, prompt="x")

        assert len(model.design_inputs) == 1
        codes = [e.code for e in _types(events, "warning")]
        assert codes == ["DESIGN_STREAM_FAILED", "FALLBACK_APPLIED"]
        assert "connection reset" in _types(events, "warning")[0].message
        assert events[-1].type == "done"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fallback_disabled(self, persistence, make_orchestrator, scripted_model):
        """Test exhausting attempts without fallback is terminal."""
        thread = await persistence.create_thread()
        model = scripted_model([[UNKNOWN_NODE]])
        events = await _collect(
            make_orchestrator(model, enable_fallback=False), thread_id=thread.thread_id, prompt="x"
        )

        assert events[-1].type == "error"
        assert events[-1].code == "NO_VALID_CANDIDATE"
        bundle = await persistence.get_bundle(thread.thread_id)
        assert len(bundle.versions) == 1
        logs = await persistence.get_logs(thread.thread_id)
        assert logs[-1].error_code == "NO_VALID_CANDIDATE"
        assert logs[-1].warning_count == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fallback_invalid(self, persistence, make_orchestrator, scripted_model):
        """Test a fallback that fails validation is terminal."""
        thread = await persistence.create_thread()
        model = scripted_model([[UNKNOWN_NODE]])
        events = await _collect(
            make_orchestrator(model, text_element_type="Label"), thread_id=thread.thread_id, prompt="x"
        )

        assert events[-1].type == "error"
        assert events[-1].code == "FALLBACK_INVALID"

    @pytest.mark.unit
    def test_no_structural_change_rejected(self, make_orchestrator, scripted_model):
        """Test an accepted-looking candidate that changes nothing on an empty base."""

        class PermissiveValidator:
            def validate(self, document):
                return ValidationResult(valid=True)

        orchestrator = make_orchestrator(scripted_model([[]]))
        orchestrator.validator = PermissiveValidator()

        issues, patches = orchestrator._evaluate(empty_spec(), empty_spec(), ConstraintSet(min_elements=0), True)
        assert [issue.code for issue in issues] == ["NO_STRUCTURAL_CHANGE"]
        assert patches == []

        issues, patches = orchestrator._evaluate(empty_spec(), empty_spec(), ConstraintSet(min_elements=0), False)
        assert issues == [] and patches == []


class TestErrors:
    """Terminal errors."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_thread_not_found(self, make_orchestrator):
        """Test unknown threads yield a single error."""
        events = await _collect(make_orchestrator(StubGenerationModel()), thread_id="thread_missing", prompt="x")

        assert len(events) == 1
        assert events[0].code == "THREAD_NOT_FOUND"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_base_version_conflict(self, persistence, make_orchestrator):
        """Test a stale base version never falls back to the active one."""
        thread = await persistence.create_thread()
        before = await persistence.get_bundle(thread.thread_id)

        events = await _collect(
            make_orchestrator(StubGenerationModel()),
            thread_id=thread.thread_id,
            prompt=PRICING_PROMPT,
            base_version_id="does-not-exist",
        )

        assert len(events) == 1
        assert events[0].type == "error"
        assert events[0].code == "BASE_VERSION_CONFLICT"

        after = await persistence.get_bundle(thread.thread_id)
        assert after.thread.active_version_id == before.thread.active_version_id
        assert after.versions == before.versions
        logs = await persistence.get_logs(thread.thread_id)
        assert [log.error_code for log in logs] == ["BASE_VERSION_CONFLICT"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_extract_exception(self, persistence, make_orchestrator, scripted_model):
        """Test model exceptions become GENERATION_EXCEPTION."""
        thread = await persistence.create_thread()
        model = scripted_model([[]], extract_error=ValueError("quota exceeded"))
        events = await _collect(make_orchestrator(model), thread_id=thread.thread_id, prompt="x")

        assert events[-1].code == "GENERATION_EXCEPTION"
        assert events[-1].message == "quota exceeded"
        logs = await persistence.get_logs(thread.thread_id)
        assert logs[-1].error_code == "GENERATION_EXCEPTION"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_context_exception(self, persistence, make_orchestrator, failing_context):
        """Test context failures are terminal."""
        thread = await persistence.create_thread()
        events = await _collect(
            make_orchestrator(StubGenerationModel(), context_provider=failing_context),
            thread_id=thread.thread_id,
            prompt="x",
        )

        assert [e.type for e in events] == ["status", "status", "error"]
        assert events[-1].code == "GENERATION_EXCEPTION"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_persist_exception_and_failing_failure_log(self, make_orchestrator):
        """Test persistence errors are caught even when failure logging fails."""

        class BrokenPersistence(InMemoryPersistence):
            async def persist_generation(self, data):
                raise RuntimeError("disk full")

            async def record_failure(self, data):
                raise RuntimeError("still broken")

        persistence = BrokenPersistence()
        thread = await persistence.create_thread()
        orchestrator = make_orchestrator(StubGenerationModel())
        orchestrator.persistence = persistence

        events = await _collect(orchestrator, thread_id=thread.thread_id, prompt=PRICING_PROMPT)
        assert events[-1].code == "GENERATION_EXCEPTION"
        assert events[-1].message == "disk full"
        assert _types(events, "patch")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_consumer_stops_early(self, persistence, make_orchestrator, scripted_model):
        """Test closing the event stream closes the model stream."""
        thread = await persistence.create_thread()
        model = scripted_model([[UNKNOWN_NODE, UNKNOWN_NODE]])
        events = make_orchestrator(model).run(GenerateRequest(thread_id=thread.thread_id, prompt="x"))

        async for event in events:
            if event.type == "warning":
                break
        await events.aclose()

        assert model.closed == 1
