"""Unit tests for public API tracing concern behavior."""

from __future__ import annotations

from opentelemetry.trace import StatusCode

from packages.asset_shared.config import AssetSettings
from packages.asset_shared.logging import public_api as public_api_module
from packages.asset_shared.logging.public_api import (
    CompletionContext,
    InvocationContext,
    PublicApiTracingConcern,
)


class _FakeSpan:
    """In-memory fake span capturing attributes and lifecycle updates."""

    def __init__(self) -> None:
        self.attributes: dict[str, object] = {}
        self.exceptions: list[BaseException] = []
        self.statuses: list[object] = []

    def set_attribute(self, key: str, value: object) -> None:
        self.attributes[key] = value

    def record_exception(self, exception: BaseException) -> None:
        self.exceptions.append(exception)

    def set_status(self, status: object) -> None:
        self.statuses.append(status)


class _FakeSpanManager:
    """Fake span context manager used by the fake tracer."""

    def __init__(self, span: _FakeSpan) -> None:
        self.span = span
        self.exited = False

    def __enter__(self) -> _FakeSpan:
        return self.span

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        del exc_type, exc, tb
        self.exited = True


class _FakeTracer:
    """Fake tracer returning tracked span context managers."""

    def __init__(self) -> None:
        self.names: list[str] = []
        self.managers: list[_FakeSpanManager] = []

    def start_as_current_span(self, name: str) -> _FakeSpanManager:
        self.names.append(name)
        manager = _FakeSpanManager(_FakeSpan())
        self.managers.append(manager)
        return manager


def test_tracing_concern_starts_and_completes_span_with_attributes() -> None:
    """Completion should set standard attributes and close span context."""
    tracer = _FakeTracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    invocation = InvocationContext(
        component_id="service_asset_store",
        api_name="publish",
        references={"filename": "sam.jpg"},
    )

    concern.on_invocation(invocation)
    concern.on_completion(
        CompletionContext(
            invocation=invocation,
            success=True,
            duration_ms=12.3,
            errors=[],
        )
    )

    assert tracer.names == ["public_api.service_asset_store.publish"]
    manager = tracer.managers[0]
    assert manager.exited is True
    assert manager.span.attributes["component_id"] == "service_asset_store"
    assert manager.span.attributes["api_name"] == "publish"
    assert manager.span.attributes["reference.filename"] == "sam.jpg"
    assert manager.span.attributes["outcome"] == "success"


def test_tracing_concern_records_exception_for_failures() -> None:
    """Failed completions should record one synthetic exception on the span."""
    tracer = _FakeTracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    invocation = InvocationContext(
        component_id="service_asset_store",
        api_name="set_from_stream",
        references={},
    )

    concern.on_invocation(invocation)
    concern.on_completion(
        CompletionContext(
            invocation=invocation,
            success=False,
            duration_ms=9.0,
            errors=["ASSET_EXISTS: asset already exists at sam.jpg"],
        )
    )

    manager = tracer.managers[0]
    assert manager.exited is True
    assert manager.span.attributes["outcome"] == "failure"
    assert len(manager.span.exceptions) == 1
    assert manager.span.statuses[0].status_code is StatusCode.ERROR


def test_tracing_concern_closes_nested_spans_innermost_first() -> None:
    tracer = _FakeTracer()
    concern = PublicApiTracingConcern(tracer=tracer)
    outer = InvocationContext(component_id="c", api_name="outer", references={})
    inner = InvocationContext(component_id="c", api_name="inner", references={})

    concern.on_invocation(outer)
    concern.on_invocation(inner)
    concern.on_completion(
        CompletionContext(
            invocation=inner, success=True, duration_ms=1.0, errors=[]
        )
    )

    assert tracer.managers[1].exited is True
    assert tracer.managers[0].exited is False


def test_default_tracer_name_comes_from_settings(monkeypatch) -> None:
    """The configured tracer name should be used for the default concern."""
    requested: list[str] = []

    def _fake_load_settings() -> AssetSettings:
        return AssetSettings.model_validate(
            {"observability": {"tracing": {"tracer_name": "custom.tracer"}}}
        )

    def _fake_get_tracer(name: str) -> _FakeTracer:
        requested.append(name)
        return _FakeTracer()

    monkeypatch.setattr(public_api_module, "load_settings", _fake_load_settings)
    monkeypatch.setattr(public_api_module.otel_trace, "get_tracer", _fake_get_tracer)
    public_api_module._default_public_api_tracing_concern.cache_clear()
    try:
        public_api_module._default_public_api_tracing_concern()
    finally:
        public_api_module._default_public_api_tracing_concern.cache_clear()

    assert requested == ["custom.tracer"]
