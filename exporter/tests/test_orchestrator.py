import pytest

from exporter.app.encoders import build_encoders
from exporter.app.errors import EmptyRowsError, EncodeError
from exporter.app.schemas.document import ExportFormat
from exporter.app.services.orchestrator import ExportOrchestrator
from exporter.tests.fixtures.documents import make_document


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

class SpyEncoder:
    def __init__(self, format: ExportFormat, payload: bytes = b"ok"):
        self.format = format
        self.payload = payload
        self.calls = []

    def encode(self, document):
        self.calls.append(document)
        return self.payload


class ExplodingEncoder:
    def __init__(self, format: ExportFormat, exc: Exception):
        self.format = format
        self.exc = exc

    def encode(self, document):
        raise self.exc


def _registry(**overrides):
    registry = {f: SpyEncoder(f) for f in ExportFormat}
    for name, encoder in overrides.items():
        registry[ExportFormat(name)] = encoder
    return registry


# ----------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------

def test_dispatches_to_encoder_for_document_format():
    registry = _registry()
    orchestrator = ExportOrchestrator(registry)

    result = orchestrator.execute(make_document(format=ExportFormat.PDF))

    assert result == b"ok"
    assert len(registry[ExportFormat.PDF].calls) == 1
    assert registry[ExportFormat.CSV].calls == []


def test_invalid_document_never_reaches_encoder():
    registry = _registry()
    orchestrator = ExportOrchestrator(registry)

    with pytest.raises(EmptyRowsError):
        orchestrator.execute(make_document(rows=[]))

    assert all(encoder.calls == [] for encoder in registry.values())


def test_custom_validator_is_used():
    seen = []
    orchestrator = ExportOrchestrator(_registry(), validator=seen.append)

    orchestrator.execute(make_document())

    assert len(seen) == 1


def test_encode_error_propagates_unchanged():
    original = EncodeError("csv", "boom")
    orchestrator = ExportOrchestrator(_registry(csv=ExplodingEncoder(ExportFormat.CSV, original)))

    with pytest.raises(EncodeError) as exc_info:
        orchestrator.execute(make_document())

    assert exc_info.value is original


def test_foreign_encoder_exception_is_wrapped_and_chained():
    cause = RuntimeError("disk on fire")
    orchestrator = ExportOrchestrator(_registry(csv=ExplodingEncoder(ExportFormat.CSV, cause)))

    with pytest.raises(EncodeError) as exc_info:
        orchestrator.execute(make_document())

    assert exc_info.value.__cause__ is cause
    assert exc_info.value.status_code == 500
    assert "disk on fire" in str(exc_info.value)


# ----------------------------------------------------------------------
# Registry checks
# ----------------------------------------------------------------------

def test_missing_encoder_fails_at_construction():
    registry = _registry()
    del registry[ExportFormat.EXCEL]

    with pytest.raises(ValueError, match="excel"):
        ExportOrchestrator(registry)


def test_mismatched_encoder_fails_at_construction():
    registry = _registry(pdf=SpyEncoder(ExportFormat.CSV))

    with pytest.raises(ValueError):
        ExportOrchestrator(registry)


def test_default_registry_covers_every_format():
    assert set(build_encoders()) == set(ExportFormat)


def test_end_to_end_with_real_encoders():
    orchestrator = ExportOrchestrator()

    assert orchestrator.execute(make_document()) == b"Name,Age\nAnn,30\nBen,41\n"
